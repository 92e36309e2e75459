"""
Tests for the parse pipeline.

Tests parse_chat end to end on small exports in every supported format,
including diagnostics, failure modes and the file entry point.
"""

from datetime import datetime
from pathlib import Path

import pytest

from chat_export.config import ParseConfig
from chat_export.errors import AmbiguousFormatError, AmbiguousLanguageError, UnsupportedLanguageError
from chat_export.models import SYSTEM_SENDER, table_columns
from chat_export.pipeline import (
    EMPTY_RESULT,
    MALFORMED_TIMESTAMP,
    ParseDiagnostics,
    ParseResult,
    parse_chat,
    parse_chat_file,
)


class TestParseChat:
    """Tests for parse_chat on the English android export."""

    def test_single_message(self):
        text = "01.02.21, 14:30 - Alice: Hi 😀 check http://example.com/page\n"
        result = parse_chat(
            text,
            ParseConfig(platform="android", language="english", url_mode="domain", anon_mode="off", order="none"),
        )

        assert len(result.table) == 1
        record = result.table[0]
        assert record.timestamp == datetime(2021, 2, 1, 14, 30)
        assert record.sender == "Alice"
        assert record.urls == ["http://example.com/"]
        assert record.emoji == [("😀", "grinning face")]
        assert record.flat_message == "Hi check"
        assert record.tokens == ["Hi", "check"]
        assert record.token_count == 2

    def test_detects_format(self, english_android_chat, plain_config):
        result = parse_chat(english_android_chat, plain_config)
        assert result.platform == "android"
        assert result.language == "english"

    def test_one_record_per_message(self, english_android_chat, plain_config):
        result = parse_chat(english_android_chat, plain_config)
        assert [r.sender for r in result.table] == [
            SYSTEM_SENDER,
            SYSTEM_SENDER,
            "Alice",
            "Bob",
            "Bob",
            "Alice",
            "Carol",
            SYSTEM_SENDER,
        ]
        assert result.diagnostics.segments == 8
        assert result.diagnostics.issues == []

    def test_multiline_message(self, english_android_chat, plain_config):
        record = parse_chat(english_android_chat, plain_config).table[3]
        assert "start_newline" in record.raw_message
        assert record.smilies == [":)"]
        assert record.flat_message == "Sounds good see you there"

    def test_message_ending_in_blank_line(self):
        text = "01.02.21, 14:30 - Alice: Hello\n\n01.02.21, 14:31 - Bob: Bye\n"
        config = ParseConfig(platform="android", language="english", anon_mode="off", order="none")
        record = parse_chat(text, config).table[0]
        assert record.flat_message == "Hello"
        assert record.tokens == ["Hello"]
        assert "newline" not in record.tokens

    def test_system_events(self, english_android_chat, plain_config):
        table = parse_chat(english_android_chat, plain_config).table
        assert table[1].system_event.kind == "group_create_other"
        assert table[7].system_event.text == "Bob left"
        assert table[7].raw_message is None

    def test_media_and_location(self, english_android_chat, plain_config):
        table = parse_chat(english_android_chat, plain_config).table
        assert table[4].media == ["IMG-20210201-WA0001.jpg"]
        assert table[5].raw_message.strip() == "media_omitted"
        assert table[5].flat_message is None
        assert table[6].location.latitude == 52.5

    def test_custom_dictionaries(self):
        text = "01.02.21, 14:30 - Alice: Hi 😀 ^^\n"
        config = ParseConfig(platform="android", language="english", anon_mode="off", order="none")
        result = parse_chat(text, config, emoji_dictionary={"😀": "smile"}, smiley_dictionary={"^^"})
        assert result.table[0].emoji == [("😀", "smile")]
        assert result.table[0].smilies == ["^^"]

    def test_default_options(self, english_android_chat):
        result = parse_chat(english_android_chat)
        assert result.table.columns == table_columns("add", "both")
        assert result.anonymization_map == {"Alice": "Person_1", "Bob": "Person_2", "Carol": "Person_3"}
        assert result.table[1].system_event.text == 'Person_1 created group "Trip"'
        assert result.table[2].anonymous == "Person_1"
        assert [r.display_order for r in result.table] == list(range(1, 9))
        assert [r.time_order for r in result.table] == list(range(1, 9))

    def test_workers_keep_order(self, english_android_chat, plain_config):
        serial = parse_chat(english_android_chat, plain_config)
        threaded = parse_chat(english_android_chat, ParseConfig(anon_mode="off", order="none", workers=4))
        assert threaded.table.rows() == serial.table.rows()


class TestOtherFormats:
    """Tests for iOS and German exports."""

    def test_english_ios(self, english_ios_chat, plain_config):
        result = parse_chat(english_ios_chat, plain_config)
        assert (result.platform, result.language) == ("ios", "english")
        table = result.table
        assert [r.sender for r in table] == [SYSTEM_SENDER, "Alice", "Bob", "Alice", "Bob"]
        assert table[2].media == ["00000012-PHOTO-2021-02-01-14-31-10.jpg"]
        assert table[2].timestamp == datetime(2021, 2, 1, 14, 31, 10)
        assert table[4].flat_message is None

    def test_ios_titled_group_events(self, english_ios_chat, plain_config):
        text = english_ios_chat + "[01.02.21, 14:34:00] Trip: Bob left\n[01.02.21, 14:35:00] Trip: Alice added Carol\n"
        table = parse_chat(text, plain_config).table
        assert [r.sender for r in table][-2:] == [SYSTEM_SENDER, SYSTEM_SENDER]
        assert [r.system_event.kind for r in table[-2:]] == ["user_left", "user_add_other"]
        assert "Trip" not in {r.sender for r in table}

    def test_german_android(self, german_android_chat, plain_config):
        result = parse_chat(german_android_chat, plain_config)
        assert (result.platform, result.language) == ("android", "german")
        assert result.table[1].tokens == ["Hallo", "zusammen"]
        assert result.table[3].system_event.kind == "user_left"

    def test_german_ios(self, german_ios_chat, plain_config):
        result = parse_chat(german_ios_chat, plain_config)
        assert (result.platform, result.language) == ("ios", "german")
        assert result.table[3].location.kind == "live"


class TestDiagnostics:
    """Tests for record-level problems and empty results."""

    def test_malformed_timestamp_is_dropped(self, plain_config):
        text = (
            "01.02.21, 14:30 - Alice: <Media omitted>\n"
            "32.02.21, 14:31 - Bob: impossible date\n"
            "01.02.21, 14:32 - Alice: fine\n"
        )
        result = parse_chat(text, plain_config)
        assert [r.raw_message for r in result.table][1] == "fine"
        assert result.diagnostics.malformed == 1
        assert result.diagnostics.issues[0].kind == MALFORMED_TIMESTAMP
        assert result.diagnostics.issues[0].index == 1

    def test_text_before_first_message(self, plain_config):
        text = "truncated line\n01.02.21, 14:30 - Alice: <Media omitted>\n"
        result = parse_chat(text, plain_config)
        assert result.diagnostics.preamble_chars == len("truncated line\n")
        assert len(result.table) == 1

    def test_empty_result_is_not_an_error(self):
        config = ParseConfig(platform="android", language="english")
        result = parse_chat("no timestamps here", config)
        assert result.table.empty
        assert result.diagnostics.empty_result
        assert result.diagnostics.issues[-1].kind == EMPTY_RESULT

    def test_diagnostics_to_dict(self):
        diagnostics = ParseDiagnostics(segments=3)
        diagnostics.add(MALFORMED_TIMESTAMP, 2, "month must be in 1..12")
        assert diagnostics.to_dict() == {
            "segments": 3,
            "preamble_chars": 0,
            "malformed": 1,
            "pruned": 0,
            "empty_result": False,
            "issues": [{"kind": MALFORMED_TIMESTAMP, "index": 2, "detail": "month must be in 1..12"}],
        }


class TestFailures:
    """Tests for errors that abort a parse."""

    def test_ambiguous_platform(self):
        with pytest.raises(AmbiguousFormatError):
            parse_chat("no timestamps at all")

    def test_ambiguous_language(self):
        with pytest.raises(AmbiguousLanguageError):
            parse_chat("01.02.21, 14:30 - Alice: hi\n")

    def test_explicit_language_skips_detection(self):
        result = parse_chat("01.02.21, 14:30 - Alice: hi\n", ParseConfig(language="english"))
        assert result.table[0].tokens == ["hi"]

    def test_unsupported_language(self):
        with pytest.raises(UnsupportedLanguageError):
            parse_chat("01.02.21, 14:30 - Alice: hi\n", ParseConfig(language="klingon"))


class TestParseResult:
    """Tests for ParseResult."""

    def test_str(self, english_android_chat, plain_config):
        summary = str(parse_chat(english_android_chat, plain_config))
        assert summary.startswith("Parse OK (android/english)")
        assert "Messages: 8 kept, 0 malformed, 0 pruned" in summary
        assert "Participants: 3" in summary

    def test_str_empty(self):
        result = parse_chat("nothing", ParseConfig(platform="ios", language="german"))
        assert isinstance(result, ParseResult)
        assert str(result).startswith("Parse EMPTY")


class TestParseChatFile:
    """Tests for parse_chat_file."""

    def test_bom_and_crlf(self, english_android_file: Path, english_android_chat, plain_config):
        from_file = parse_chat_file(english_android_file, plain_config)
        from_text = parse_chat(english_android_chat, plain_config)
        assert from_file.table.rows() == from_text.table.rows()

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(OSError):
            parse_chat_file(tmp_path / "missing.txt")
