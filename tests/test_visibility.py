"""Unit tests for the visibility policy."""
import pytest

from helpers import FixedRegistry, make_processed_event
from processor.tag_parser import TagParser
from processor.visibility import filter_by_tags, parse_requested_tags

UNTAGGED = make_processed_event('untagged')
COMMUNITY = make_processed_event('community', valid={'COMMUNITY'})
UNKNOWN = make_processed_event('unknown', invalid={'FOOBAR'})
BOTH = make_processed_event('both', valid={'WORKSHOP', 'COMMUNITY'})
MIXED = make_processed_event('mixed', valid={'WORKSHOP'}, invalid={'FOOBAR'})
ALL_EVENTS = [UNTAGGED, COMMUNITY, UNKNOWN, BOTH, MIXED]


def _ids(events):
    return [event.id for event in events]


class TestNoRequestedTags:
    """Test cases for the unfiltered view."""

    def test_unprivileged_sees_only_valid_tagged(self):
        visible = filter_by_tags(ALL_EVENTS, [], viewer_is_privileged=False)

        assert _ids(visible) == ['community', 'both', 'mixed']

    def test_unprivileged_untagged_excluded_tagged_included(self):
        visible = filter_by_tags([UNTAGGED, COMMUNITY], None, viewer_is_privileged=False)

        assert _ids(visible) == ['community']

    def test_privileged_sees_everything(self):
        visible = filter_by_tags(ALL_EVENTS, [], viewer_is_privileged=True)

        assert _ids(visible) == _ids(ALL_EVENTS)


class TestRequestedTags:
    """Test cases for tag-filtered views."""

    def test_or_semantics_unprivileged(self):
        visible = filter_by_tags([COMMUNITY, BOTH], ['WORKSHOP'], viewer_is_privileged=False)

        assert _ids(visible) == ['both']

    def test_requested_tags_case_insensitive(self):
        visible = filter_by_tags(ALL_EVENTS, ['community'], viewer_is_privileged=False)

        assert _ids(visible) == ['community', 'both']

    def test_multiple_requested_tags(self):
        visible = filter_by_tags(ALL_EVENTS, ['TRAINING', 'WORKSHOP'], viewer_is_privileged=False)

        assert _ids(visible) == ['both', 'mixed']

    def test_privileged_keeps_untagged_and_unknown(self):
        visible = filter_by_tags(ALL_EVENTS, ['TRAINING'], viewer_is_privileged=True)

        assert _ids(visible) == ['untagged', 'unknown']

    def test_unprivileged_hides_untagged_and_unknown(self):
        visible = filter_by_tags([UNTAGGED, UNKNOWN], ['FOOBAR'], viewer_is_privileged=False)

        assert visible == []

    def test_wildcard(self):
        spring = make_processed_event('spring', valid={'MESSE_SPRING'})
        other = make_processed_event('other', valid={'MESSAGE'})

        visible = filter_by_tags([spring, other], ['messe*'], viewer_is_privileged=False)

        assert _ids(visible) == ['spring']


class TestParseRequestedTags:
    """Test cases for parsing a comma-separated filter."""

    def test_keeps_whitelisted_tags(self, tag_parser):
        assert parse_requested_tags('community, Workshop', tag_parser) == ['COMMUNITY', 'WORKSHOP']

    def test_drops_unknown_and_duplicates(self, tag_parser, caplog):
        with caplog.at_level('WARNING', logger='processor.visibility'):
            tags = parse_requested_tags('community,FOOBAR,COMMUNITY,,', tag_parser)

        assert tags == ['COMMUNITY']
        assert any('FOOBAR' in record.message for record in caplog.records)

    def test_keeps_wildcards(self, tag_parser):
        assert parse_requested_tags('work*,*', tag_parser) == ['WORK*']

    def test_drops_non_ascii_lookalikes(self):
        parser = TagParser(FixedRegistry({'SS', 'COMMUNITY'}))

        assert parse_requested_tags('\u00df,communi\u0131ty', parser) == []

    @pytest.mark.parametrize('raw', ['', None, ' , '])
    def test_empty(self, tag_parser, raw):
        assert parse_requested_tags(raw, tag_parser) == []
