"""
Tests for record classification.

Tests timestamp parsing for both platforms and all date conventions, and
the split of the remainder into sender, message and system event.
"""

from datetime import datetime

import pytest

from chat_export.classifier import classify_block, collect_group_titles
from chat_export.errors import MalformedTimestampError
from chat_export.models import SYSTEM_SENDER

OMITTED = " media_omitted "


def _classify(block, grammar, indicators, **kwargs):
    return classify_block(block, grammar, indicators, OMITTED, **kwargs)


class TestTimestamps:
    """Tests for timestamp parsing."""

    def test_dotted_android_is_day_first(self, android_grammar, english_android):
        result = _classify("01.02.21, 14:30 - Alice: Hi", android_grammar, english_android)
        assert result.timestamp == datetime(2021, 2, 1, 14, 30)

    def test_four_digit_year(self, android_grammar, english_android):
        result = _classify("01.02.2021, 14:30 - Alice: Hi", android_grammar, english_android)
        assert result.timestamp == datetime(2021, 2, 1, 14, 30)

    def test_slashed_month_first_by_default(self, android_grammar, english_android):
        result = _classify("2/1/21, 2:30 PM - Alice: Hi", android_grammar, english_android)
        assert result.timestamp == datetime(2021, 2, 1, 14, 30)

    def test_slashed_day_first_option(self, android_grammar, english_android):
        result = _classify(
            "2/1/21, 2:30 PM - Alice: Hi", android_grammar, english_android, slash_date_order="dmy"
        )
        assert result.timestamp == datetime(2021, 1, 2, 14, 30)

    @pytest.mark.parametrize(
        "clock, hour",
        [("12:05 AM", 0), ("12:05 PM", 12), ("1:05 am", 1), ("11:05 p.m.", 23)],
    )
    def test_twelve_hour_clock(self, android_grammar, english_android, clock, hour):
        result = _classify(f"2/1/21, {clock} - Alice: Hi", android_grammar, english_android)
        assert result.timestamp.hour == hour
        assert result.timestamp.minute == 5

    def test_ios_with_seconds(self, ios_grammar, english_ios):
        result = _classify("[01.02.21, 14:30:12] Alice: Hi", ios_grammar, english_ios)
        assert result.timestamp == datetime(2021, 2, 1, 14, 30, 12)

    def test_ios_twelve_hour(self, ios_grammar, english_ios):
        result = _classify("[2/1/21, 2:30:00 PM] Alice: Hi", ios_grammar, english_ios)
        assert result.timestamp == datetime(2021, 2, 1, 14, 30)

    def test_invalid_date_is_malformed(self, android_grammar, english_android):
        with pytest.raises(MalformedTimestampError):
            _classify("31.02.21, 14:30 - Alice: Hi", android_grammar, english_android)

    def test_invalid_hour_with_am_pm(self, android_grammar, english_android):
        with pytest.raises(MalformedTimestampError):
            _classify("2/1/21, 13:30 PM - Alice: Hi", android_grammar, english_android)

    def test_wrong_platform_header(self, ios_grammar, english_ios):
        with pytest.raises(MalformedTimestampError, match="no ios header"):
            _classify("01.02.21, 14:30 - Alice: Hi", ios_grammar, english_ios)


class TestSenderAndMessage:
    """Tests for sender / message / system event classification."""

    def test_user_message(self, android_grammar, english_android):
        result = _classify("01.02.21, 14:30 - Alice: Hi there", android_grammar, english_android)
        assert result.sender == "Alice"
        assert result.raw_message == "Hi there"
        assert result.system_event is None

    def test_message_containing_colons(self, android_grammar, english_android):
        """Only the first ': ' separates sender and message."""
        result = _classify(
            "01.02.21, 14:30 - Alice: note: meet at 10:30", android_grammar, english_android
        )
        assert result.sender == "Alice"
        assert result.raw_message == "note: meet at 10:30"

    def test_sender_containing_colon(self, android_grammar, english_android):
        result = _classify("01.02.21, 14:30 - Team:Blue: go", android_grammar, english_android)
        assert result.sender == "Team:Blue"
        assert result.raw_message == "go"

    def test_system_event_without_sender(self, android_grammar, english_android):
        result = _classify("01.02.21, 14:30 - Bob left", android_grammar, english_android)
        assert result.sender == SYSTEM_SENDER
        assert result.raw_message is None
        assert result.system_event.kind == "user_left"
        assert result.system_event.text == "Bob left"

    def test_system_event_as_candidate_sender(self, android_grammar, english_android):
        """A system event followed by ': ' keeps the rest as residual text."""
        result = _classify(
            "01.02.21, 14:30 - You added Carol: welcome", android_grammar, english_android
        )
        assert result.sender == SYSTEM_SENDER
        assert result.system_event.kind == "user_add_self"
        assert result.system_event.text == "You added Carol"
        assert result.raw_message == "welcome"

    def test_self_deleting_media_strips_delimiter(self, android_grammar, english_android):
        """A sender with no body keeps no trailing ':'."""
        result = _classify("01.02.21, 14:30 - Alice:", android_grammar, english_android)
        assert result.sender == "Alice"
        assert result.raw_message is None
        assert result.system_event is None

    def test_media_omitted_becomes_placeholder(self, android_grammar, english_android):
        result = _classify("01.02.21, 14:30 - Alice: <Media omitted>", android_grammar, english_android)
        assert result.raw_message == OMITTED

    def test_ios_media_omitted(self, ios_grammar, english_ios):
        result = _classify("[01.02.21, 14:30:00] Alice: image omitted", ios_grammar, english_ios)
        assert result.raw_message == OMITTED

    def test_ios_group_system_message(self, ios_grammar, english_ios):
        block = "[01.02.21, 14:28:00] Trip: Messages and calls are end-to-end encrypted. Tap."
        result = _classify(block, ios_grammar, english_ios)
        assert result.sender == SYSTEM_SENDER
        assert result.system_event.kind == "start_message"

    def test_multiline_message_keeps_placeholder(self, android_grammar, english_android):
        block = "01.02.21, 14:30 - Alice: a start_newline b"
        result = _classify(block, android_grammar, english_android)
        assert result.raw_message == "a start_newline b"


# =============================================================================
# Group titles
# =============================================================================

IOS_GROUP_BLOCKS = [
    "[01.02.21, 14:28:00] Trip: Messages and calls are end-to-end encrypted. Tap.",
    "[01.02.21, 14:30:00] Alice: Hi",
    '[01.02.21, 14:31:00] Trip: Alice changed the subject from "Trip" to "Beach"',
    "[01.02.21, 14:32:00] Bob: I left my keys",
]


class TestGroupTitles:
    """Tests for "<group title>: <event>" lines."""

    def test_collect_from_start_message(self, ios_grammar, english_ios):
        titles = collect_group_titles(IOS_GROUP_BLOCKS[:2], ios_grammar, english_ios)
        assert titles == {"Trip"}

    def test_collect_renamed_title(self, ios_grammar, english_ios):
        titles = collect_group_titles(IOS_GROUP_BLOCKS, ios_grammar, english_ios)
        assert titles == {"Trip", "Beach"}

    def test_messages_are_not_titles(self, ios_grammar, english_ios):
        titles = collect_group_titles(IOS_GROUP_BLOCKS[1:2] + IOS_GROUP_BLOCKS[3:], ios_grammar, english_ios)
        assert titles == set()

    def test_skips_blocks_without_header(self, ios_grammar, english_ios):
        assert collect_group_titles(["no header here"], ios_grammar, english_ios) == set()

    @pytest.mark.parametrize(
        "event, kind",
        [
            ("Bob left", "user_left"),
            ("Alice added Carol", "user_add_other"),
        ],
    )
    def test_titled_event_is_system(self, ios_grammar, english_ios, event, kind):
        block = f"[01.02.21, 14:33:00] Trip: {event}"
        result = _classify(block, ios_grammar, english_ios, group_titles={"Trip"})
        assert result.sender == SYSTEM_SENDER
        assert result.raw_message is None
        assert result.system_event.kind == kind
        assert result.system_event.text == event

    def test_participant_is_not_a_title(self, ios_grammar, english_ios):
        block = "[01.02.21, 14:33:00] Alice: I left"
        result = _classify(block, ios_grammar, english_ios, group_titles={"Trip"})
        assert result.sender == "Alice"
        assert result.raw_message == "I left"
        assert result.system_event is None

    def test_unknown_title_stays_a_message(self, ios_grammar, english_ios):
        result = _classify("[01.02.21, 14:33:00] Trip: Bob left", ios_grammar, english_ios)
        assert result.sender == "Trip"
        assert result.system_event is None

    def test_titled_ordinary_text_stays_a_message(self, ios_grammar, english_ios):
        block = "[01.02.21, 14:33:00] Trip: see you at 8"
        result = _classify(block, ios_grammar, english_ios, group_titles={"Trip"})
        assert result.sender == "Trip"
        assert result.raw_message == "see you at 8"
