"""Pure editing functions over a tunnel's ingress rule list.

None of these functions perform I/O or mutate their input; each returns a new
:class:`TunnelConfig`. Callers are expected to fetch the remote document
immediately before editing and push the result as a whole.
"""

from collections.abc import Sequence

from ..common.exceptions import ConflictError, NotFoundError, ValidationError
from .models import IngressRule, TunnelConfig, normalize_path, storage_path


def next_rule_id(rules: Sequence[IngressRule]) -> str:
    """Return ``max(numeric ids) + 1``; missing and non-numeric ids are ignored."""
    numeric_ids = [rule.numeric_id for rule in rules if rule.numeric_id is not None]
    return str(max(numeric_ids, default=0) + 1)


def insert(
    config: TunnelConfig, hostname: str, path: str, service: str
) -> TunnelConfig:
    """Add a hostname rule immediately before the catch-all.

    When the config has no catch-all the rule is appended instead.

    Raises:
        ValidationError: If hostname or service is empty
        ConflictError: If a rule with the same hostname and path exists
    """
    if not hostname:
        raise ValidationError("hostname is required for a new ingress rule")
    if not service:
        raise ValidationError(f"service is required for hostname {hostname}")

    wanted_path = normalize_path(path)
    for rule in config.hostname_rules():
        if rule.matches(hostname, wanted_path):
            raise ConflictError(
                f"hostname {hostname} with path {wanted_path} already exists"
            )

    new_rule = IngressRule(
        id=next_rule_id(config.ingress),
        hostname=hostname,
        path=storage_path(wanted_path),
        service=service,
        extra={"originRequest": {}},
    )

    rules = list(config.ingress)
    catch_all = config.catch_all_index
    if catch_all is None:
        rules.append(new_rule)
    else:
        rules.insert(catch_all, new_rule)

    return config.model_copy(update={"ingress": rules})


def update(
    config: TunnelConfig,
    original_hostname: str,
    new_hostname: str,
    path: str,
    service: str,
) -> TunnelConfig:
    """Rewrite the first rule whose hostname is ``original_hostname``.

    A path of ``*`` is stored as the empty string.

    Raises:
        NotFoundError: If no rule has ``original_hostname``
        ValidationError: If the new hostname or service is empty
    """
    if not new_hostname:
        raise ValidationError("hostname cannot be cleared on an ingress rule")
    if not service:
        raise ValidationError(f"service is required for hostname {new_hostname}")

    rules = list(config.ingress)
    for index, rule in enumerate(rules):
        if original_hostname and rule.hostname == original_hostname:
            rules[index] = rule.model_copy(
                update={
                    "hostname": new_hostname,
                    "service": service,
                    "path": storage_path(path),
                }
            )
            return config.model_copy(update={"ingress": rules})

    raise NotFoundError(f"hostname {original_hostname} not found")


def remove(config: TunnelConfig, hostname: str, path: str) -> TunnelConfig:
    """Drop the first rule matching ``hostname`` and the normalized ``path``.

    Raises:
        ValidationError: If ``hostname`` is empty (the catch-all is not removable)
        NotFoundError: If no rule matches
    """
    if not hostname:
        raise ValidationError("the catch-all ingress rule cannot be removed")

    wanted_path = normalize_path(path)
    rules = list(config.ingress)
    for index, rule in enumerate(rules):
        if rule.matches(hostname, wanted_path):
            del rules[index]
            return config.model_copy(update={"ingress": rules})

    raise NotFoundError(f"hostname {hostname} with path {wanted_path} not found")


def validate_rules(rules: Sequence[IngressRule]) -> None:
    """Check the rule-shape invariants shared by remote and local configs.

    Raises:
        ValidationError: On the first violated invariant
    """
    if not rules:
        raise ValidationError("at least one ingress rule is required")

    if not rules[-1].is_catch_all:
        raise ValidationError("last ingress rule must be a catch-all (no hostname)")

    seen: set[tuple[str, str]] = set()
    for index, rule in enumerate(rules):
        if not rule.service:
            raise ValidationError(f"service is required for ingress rule {index}")

        if rule.is_catch_all:
            if index != len(rules) - 1:
                raise ValidationError(
                    f"hostname is required for ingress rule {index} (except last rule)"
                )
            continue

        key = (rule.hostname, rule.normalized_path)
        if key in seen:
            raise ValidationError(
                f"duplicate ingress rule for hostname {rule.hostname} "
                f"with path {rule.normalized_path}"
            )
        seen.add(key)


def validate(config: TunnelConfig) -> None:
    """Validate a config before it is pushed."""
    validate_rules(config.ingress)
