"""Tests for the pure ingress editing functions."""

import pytest

from tunnelman.common.exceptions import ConflictError, NotFoundError, ValidationError
from tunnelman.ingress import editor
from tunnelman.ingress.models import IngressRule, TunnelConfig


def make_config(*rules: IngressRule) -> TunnelConfig:
    return TunnelConfig(ingress=list(rules))


CATCH_ALL = IngressRule(service="http_status:404")


class TestInsert:
    """Test inserting hostname rules."""

    def test_insert_places_rule_before_catch_all(self, catch_all_config):
        """New rules are spliced in immediately before the catch-all."""
        result = editor.insert(
            catch_all_config, "api.example.com", "*", "http://localhost:8080"
        )

        assert len(result.ingress) == 2
        assert result.ingress[0].hostname == "api.example.com"
        assert result.ingress[0].service == "http://localhost:8080"
        assert result.ingress[0].normalized_path == "*"
        assert result.ingress[1].hostname == ""

    def test_insert_between_existing_rules_and_catch_all(self):
        """Existing hostname rules keep their order ahead of the new one."""
        config = make_config(
            IngressRule(id="1", hostname="a.example.com", service="http://a"),
            CATCH_ALL,
        )

        result = editor.insert(config, "b.example.com", "", "http://b")

        assert [r.hostname for r in result.ingress] == ["a.example.com", "b.example.com", ""]

    def test_insert_without_catch_all_appends(self):
        """A config lacking a catch-all gets the rule appended."""
        config = make_config(IngressRule(id="1", hostname="a.example.com", service="http://a"))

        result = editor.insert(config, "b.example.com", "/api", "http://b")

        assert [r.hostname for r in result.ingress] == ["a.example.com", "b.example.com"]
        assert result.ingress[-1].path == "/api"

    def test_insert_stores_wildcard_as_empty_path(self, catch_all_config):
        """Both '' and '*' are stored as the canonical empty path."""
        from_star = editor.insert(catch_all_config, "a.example.com", "*", "http://a")
        from_empty = editor.insert(catch_all_config, "a.example.com", "", "http://a")

        assert from_star.ingress[0].path == ""
        assert from_empty.ingress[0].path == ""
        assert "path" not in from_star.ingress[0].to_wire()

    def test_insert_duplicate_raises_conflict_and_leaves_config_unchanged(
        self, catch_all_config
    ):
        """Same hostname and normalized path twice is a conflict."""
        once = editor.insert(catch_all_config, "api.example.com", "", "http://a")
        before = once.model_dump_json()

        with pytest.raises(ConflictError, match="already exists"):
            editor.insert(once, "api.example.com", "*", "http://b")

        assert once.model_dump_json() == before

    def test_insert_same_hostname_different_path_is_allowed(self, catch_all_config):
        """Hostnames may repeat when paths differ."""
        config = editor.insert(catch_all_config, "api.example.com", "", "http://a")
        config = editor.insert(config, "api.example.com", "/v2", "http://b")

        assert len(config.hostname_rules()) == 2

    def test_insert_does_not_mutate_input(self, catch_all_config):
        """The input config is left untouched."""
        editor.insert(catch_all_config, "api.example.com", "", "http://a")

        assert len(catch_all_config.ingress) == 1

    def test_insert_assigns_increasing_ids(self, catch_all_config):
        """Each id is greater than every id assigned before it."""
        config = catch_all_config
        assigned = []
        for index in range(5):
            config = editor.insert(config, f"h{index}.example.com", "", "http://x")
            new_rule = config.ingress[-2]
            assigned.append(int(new_rule.id))

        assert len(set(assigned)) == 5
        assert assigned == sorted(assigned)
        assert assigned[0] == 1

    def test_insert_ignores_non_numeric_ids(self):
        """Non-numeric ids never break id assignment."""
        config = make_config(
            IngressRule(id="abc", hostname="a.example.com", service="http://a"),
            IngressRule(id="41", hostname="b.example.com", service="http://b"),
            CATCH_ALL,
        )

        result = editor.insert(config, "c.example.com", "", "http://c")

        assert result.ingress[2].id == "42"

    def test_insert_marks_new_rule_with_origin_request(self, catch_all_config):
        """New rules carry an empty originRequest object on the wire."""
        result = editor.insert(catch_all_config, "a.example.com", "", "http://a")

        assert result.ingress[0].to_wire()["originRequest"] == {}

    def test_insert_rejects_empty_hostname_or_service(self, catch_all_config):
        """Empty hostname would create a second catch-all; empty service is invalid."""
        with pytest.raises(ValidationError):
            editor.insert(catch_all_config, "", "", "http://a")
        with pytest.raises(ValidationError):
            editor.insert(catch_all_config, "a.example.com", "", "")


class TestUpdate:
    """Test updating hostname rules."""

    def test_update_rewrites_first_match_in_place(self):
        """Hostname, service and path are replaced; position and id are kept."""
        config = make_config(
            IngressRule(id="1", hostname="a.example.com", service="http://a"),
            IngressRule(id="2", hostname="b.example.com", service="http://b"),
            CATCH_ALL,
        )

        result = editor.update(config, "a.example.com", "c.example.com", "/x", "http://c")

        assert result.ingress[0].id == "1"
        assert result.ingress[0].hostname == "c.example.com"
        assert result.ingress[0].path == "/x"
        assert result.ingress[0].service == "http://c"
        assert result.ingress[1].hostname == "b.example.com"

    def test_update_strips_wildcard_path(self):
        """A '*' path is stored as empty."""
        config = make_config(
            IngressRule(id="1", hostname="a.example.com", path="/x", service="http://a"),
            CATCH_ALL,
        )

        result = editor.update(config, "a.example.com", "a.example.com", "*", "http://a")

        assert result.ingress[0].path == ""

    def test_update_preserves_extra_fields(self):
        """Unknown wire fields survive an update."""
        config = make_config(
            IngressRule(
                id="1",
                hostname="a.example.com",
                service="http://a",
                extra={"originRequest": {"httpHostHeader": "a"}},
            ),
            CATCH_ALL,
        )

        result = editor.update(config, "a.example.com", "a.example.com", "", "http://b")

        assert result.ingress[0].extra == {"originRequest": {"httpHostHeader": "a"}}

    def test_update_unknown_hostname_raises_not_found(self, catch_all_config):
        """Updating a hostname that is not routed fails."""
        with pytest.raises(NotFoundError, match="not found"):
            editor.update(catch_all_config, "missing.example.com", "x.example.com", "", "http://x")


class TestRemove:
    """Test removing hostname rules."""

    def test_remove_empty_path_matches_wildcard_rules(self):
        """'' and '*' both match a rule stored with an empty path."""
        config = make_config(
            IngressRule(id="1", hostname="a.example.com", service="http://a"),
            CATCH_ALL,
        )

        assert len(editor.remove(config, "a.example.com", "").ingress) == 1
        assert len(editor.remove(config, "a.example.com", "*").ingress) == 1

    def test_remove_matches_literal_star_path(self):
        """A rule stored with a literal '*' path matches an empty request path."""
        config = make_config(
            IngressRule(id="1", hostname="a.example.com", path="*", service="http://a"),
            CATCH_ALL,
        )

        result = editor.remove(config, "a.example.com", "")

        assert result.ingress == [CATCH_ALL]

    def test_remove_only_first_match_with_exact_path(self):
        """Only the rule with the requested path is removed."""
        config = make_config(
            IngressRule(id="1", hostname="a.example.com", service="http://a"),
            IngressRule(id="2", hostname="a.example.com", path="/v2", service="http://b"),
            CATCH_ALL,
        )

        result = editor.remove(config, "a.example.com", "/v2")

        assert [r.id for r in result.ingress] == ["1", None]

    def test_remove_missing_raises_not_found(self, catch_all_config):
        with pytest.raises(NotFoundError):
            editor.remove(catch_all_config, "a.example.com", "")

    def test_remove_catch_all_is_rejected(self, catch_all_config):
        with pytest.raises(ValidationError):
            editor.remove(catch_all_config, "", "")


class TestValidate:
    """Test rule-shape validation."""

    def test_valid_config_passes(self):
        editor.validate(
            make_config(IngressRule(hostname="a.example.com", service="http://a"), CATCH_ALL)
        )

    def test_empty_config_is_invalid(self):
        with pytest.raises(ValidationError, match="at least one"):
            editor.validate(make_config())

    def test_catch_all_must_be_last(self):
        with pytest.raises(ValidationError, match="catch-all"):
            editor.validate(
                make_config(CATCH_ALL, IngressRule(hostname="a.example.com", service="http://a"))
            )

    def test_only_one_catch_all(self):
        with pytest.raises(ValidationError, match="hostname is required"):
            editor.validate(make_config(CATCH_ALL, CATCH_ALL))

    def test_service_required(self):
        with pytest.raises(ValidationError, match="service is required"):
            editor.validate(make_config(IngressRule(hostname="a.example.com"), CATCH_ALL))

    def test_duplicate_hostname_path_is_invalid(self):
        with pytest.raises(ValidationError, match="duplicate"):
            editor.validate(
                make_config(
                    IngressRule(hostname="a.example.com", service="http://a"),
                    IngressRule(hostname="a.example.com", path="*", service="http://b"),
                    CATCH_ALL,
                )
            )


class TestRoutesHostname:
    """Test hostname lookup across path rules."""

    def test_any_path_counts(self):
        config = make_config(
            IngressRule(hostname="a.example.com", path="/v2", service="http://a"), CATCH_ALL
        )

        assert config.routes_hostname("a.example.com")
        assert not config.routes_hostname("b.example.com")
        assert not config.routes_hostname("")


class TestRoundTrip:
    """Invariants across a sequence of edits."""

    def test_insert_then_remove_restores_catch_all_only(self, catch_all_config):
        """Insert then remove the same hostname yields the original config."""
        inserted = editor.insert(
            catch_all_config, "api.example.com", "*", "http://localhost:8080"
        )
        assert len(inserted.ingress) == 2
        assert inserted.ingress[0].hostname == "api.example.com"
        assert inserted.ingress[1].hostname == ""

        removed = editor.remove(inserted, "api.example.com", "*")

        assert removed.ingress == catch_all_config.ingress

    def test_catch_all_stays_last_through_edits(self, catch_all_config):
        """Validation holds after every insert, update and remove."""
        config = editor.insert(catch_all_config, "a.example.com", "", "http://a")
        editor.validate(config)
        config = editor.insert(config, "b.example.com", "/b", "http://b")
        editor.validate(config)
        config = editor.update(config, "a.example.com", "c.example.com", "", "http://c")
        editor.validate(config)
        config = editor.remove(config, "b.example.com", "/b")
        editor.validate(config)

        assert config.ingress[-1].is_catch_all
        assert sum(1 for r in config.ingress if r.is_catch_all) == 1
