import asyncio

import pytest

from autotagger.errors import ConfigurationError, ExternalServiceError
from autotagger.models import CommandOption, ResolutionMode
from autotagger.resolver import (
    AllTags,
    FilteredTags,
    ManualTags,
    parse_manual_tags,
    policy_for,
    resolve,
    resolve_references,
)
from autotagger.template import join_references


class TestParseManualTags:
    def test_split_on_comma_and_newline(self):
        assert parse_manual_tags("a, b\nc") == ["a", "b", "c"]

    def test_duplicates_preserved(self):
        assert parse_manual_tags("a,a") == ["a", "a"]

    def test_empty_pieces_dropped(self):
        assert parse_manual_tags(" , a,,\n\n b ,") == ["a", "b"]

    def test_empty_input(self):
        assert parse_manual_tags("") == []

    def test_round_trip_through_reference_join(self):
        tags = parse_manual_tags("a, b\nc")
        assert parse_manual_tags(join_references(tags)) == tags

    def test_round_trip_keeps_duplicates(self):
        tags = parse_manual_tags("x\ny, x")
        assert tags == ["x", "y", "x"]
        assert parse_manual_tags(join_references(tags)) == ["x", "y", "x"]


class TestResolve:
    def test_all_uses_vocabulary_verbatim(self, vocabulary):
        tags = asyncio.run(resolve(AllTags(), vocabulary))
        assert tags == vocabulary.tags
        assert vocabulary.calls == [None]

    def test_filter_passes_pattern_to_vocabulary(self, vocabulary):
        tags = asyncio.run(resolve(FilteredTags("^project/"), vocabulary))
        assert tags == ["project/alpha", "project/beta"]
        assert vocabulary.calls == ["^project/"]

    def test_filter_empty_pattern_is_configuration_error(self, vocabulary):
        with pytest.raises(ConfigurationError):
            asyncio.run(resolve(FilteredTags(""), vocabulary))
        assert vocabulary.calls == []

    def test_filter_blank_pattern_is_configuration_error(self, vocabulary):
        with pytest.raises(ConfigurationError):
            asyncio.run(resolve(FilteredTags("   "), vocabulary))

    def test_filter_invalid_pattern_is_configuration_error(self, vocabulary):
        with pytest.raises(ConfigurationError):
            asyncio.run(resolve(FilteredTags("[unclosed"), vocabulary))
        assert vocabulary.calls == []

    def test_filter_matching_nothing_is_empty(self, vocabulary):
        assert asyncio.run(resolve(FilteredTags("^zzz$"), vocabulary)) == []

    def test_manual_does_not_consult_vocabulary(self, vocabulary):
        tags = asyncio.run(resolve(ManualTags(("b", "a", "b")), vocabulary))
        assert tags == ["b", "a", "b"]
        assert vocabulary.calls == []

    @pytest.mark.parametrize("policy", [AllTags(), FilteredTags("o"), ManualTags(("x", "y"))])
    def test_idempotent(self, vocabulary, policy):
        first = asyncio.run(resolve(policy, vocabulary))
        second = asyncio.run(resolve(policy, vocabulary))
        assert first == second

    def test_vocabulary_failure_is_external_service_error(self, vocabulary):
        vocabulary.error = OSError("index unavailable")
        with pytest.raises(ExternalServiceError) as exc_info:
            asyncio.run(resolve(AllTags(), vocabulary))
        assert "index unavailable" in str(exc_info.value)

    def test_vocabulary_configuration_error_propagates(self, vocabulary):
        vocabulary.error = ConfigurationError("bad pattern")
        with pytest.raises(ConfigurationError):
            asyncio.run(resolve(FilteredTags("ok"), vocabulary))


class TestPolicyFor:
    def test_modes(self):
        assert policy_for(CommandOption(mode=ResolutionMode.ALL)) == AllTags()
        assert policy_for(CommandOption(mode=ResolutionMode.FILTER, filter_pattern="^a")) == FilteredTags("^a")

    def test_manual_reuses_stored_tags_without_raw_text(self):
        option = CommandOption(mode=ResolutionMode.MANUAL, manual_tags=["a", " b "])
        assert policy_for(option) == ManualTags(("a", " b "))

    def test_manual_parses_raw_text(self):
        option = CommandOption(mode=ResolutionMode.MANUAL, manual_tags=["old"])
        assert policy_for(option, "x, y") == ManualTags(("x", "y"))


class TestResolveReferences:
    def test_returns_new_option(self, vocabulary):
        option = CommandOption()
        resolved = asyncio.run(resolve_references(option, vocabulary))
        assert resolved.reference_set == vocabulary.tags
        assert option.reference_set == []

    def test_manual_sets_both_fields(self, vocabulary):
        option = CommandOption(mode=ResolutionMode.MANUAL)
        resolved = asyncio.run(resolve_references(option, vocabulary, "a, b\nc"))
        assert resolved.manual_tags == ["a", "b", "c"]
        assert resolved.reference_set == ["a", "b", "c"]

    def test_manual_refresh_is_idempotent(self, vocabulary):
        option = CommandOption(mode=ResolutionMode.MANUAL, manual_tags=["a", "a", "b"])
        once = asyncio.run(resolve_references(option, vocabulary))
        twice = asyncio.run(resolve_references(once, vocabulary))
        assert once.reference_set == ["a", "a", "b"]
        assert twice == once

    def test_filter_failure_leaves_option_untouched(self, vocabulary):
        option = CommandOption(mode=ResolutionMode.FILTER, filter_pattern="", reference_set=["kept"])
        with pytest.raises(ConfigurationError):
            asyncio.run(resolve_references(option, vocabulary))
        assert option.reference_set == ["kept"]
