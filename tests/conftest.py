"""
Pytest fixtures for Chat Export Parser tests.

This module provides shared fixtures: small but realistic exports for
every supported language and platform, and the parsed resources that most
unit tests need.

Fixture Categories:
    1. Export text fixtures (english/german x android/ios)
    2. Resource fixtures (indicator table, grammars, indicator sets)
    3. File fixtures (exports written to tmp_path)

Design Notes:
    - Exports are plain strings so tests can tweak them inline
    - Timestamps are dotted (day-first) unless a test is about slashed dates
"""

from pathlib import Path

import pytest

from chat_export.config import ParseConfig
from chat_export.indicators import load_indicator_table


def pytest_configure(config):
    config.addinivalue_line("markers", "property: property-based tests using hypothesis")


# =============================================================================
# Export text fixtures
# =============================================================================

ENGLISH_ANDROID_CHAT = (
    "01.02.21, 14:28 - Messages and calls are end-to-end encrypted. No one outside of this chat, "
    "not even WhatsApp, can read or listen to them. Tap to learn more.\n"
    '01.02.21, 14:29 - Alice created group "Trip"\n'
    "01.02.21, 14:30 - Alice: Hi 😀 check http://example.com/page\n"
    "01.02.21, 14:31 - Bob: Sounds good :)\n"
    "see you there\n"
    "01.02.21, 14:32 - Bob: IMG-20210201-WA0001.jpg (file attached)\n"
    "01.02.21, 14:33 - Alice: <Media omitted>\n"
    "01.02.21, 14:34 - Carol: location: https://maps.google.com/?q=52.5,13.4\n"
    "01.02.21, 14:35 - Bob left\n"
)

ENGLISH_IOS_CHAT = (
    "[01.02.21, 14:28:00] Trip: Messages and calls are end-to-end encrypted. "
    "No one outside of this chat, not even WhatsApp, can read or listen to them.\n"
    "[01.02.21, 14:30:00] Alice: Hi 😀\n"
    "[01.02.21, 14:31:10] Bob: <attached: 00000012-PHOTO-2021-02-01-14-31-10.jpg>\n"
    "[01.02.21, 14:32:00] Alice: image omitted\n"
    "[01.02.21, 14:33:00] Bob: Missed voice call\n"
)

GERMAN_ANDROID_CHAT = (
    "01.02.21, 14:28 - Nachrichten und Anrufe sind Ende-zu-Ende-verschlüsselt. "
    "Niemand außerhalb dieses Chats kann sie lesen oder anhören.\n"
    "01.02.21, 14:30 - Anna: Hallo zusammen 😀\n"
    "01.02.21, 14:31 - Ben: <Medien ausgeschlossen>\n"
    "01.02.21, 14:32 - Ben hat die Gruppe verlassen\n"
)

GERMAN_IOS_CHAT = (
    "[01.02.21, 14:28:00] Ausflug: Nachrichten und Anrufe sind Ende-zu-Ende-verschlüsselt. "
    "Niemand außerhalb dieses Chats kann sie lesen oder anhören.\n"
    "[01.02.21, 14:30:00] Anna: Hallo 😀\n"
    "[01.02.21, 14:31:00] Ben: Bild weggelassen\n"
    "[01.02.21, 14:32:00] Ben: Live-Standort geteilt\n"
)


@pytest.fixture
def english_android_chat() -> str:
    return ENGLISH_ANDROID_CHAT


@pytest.fixture
def english_ios_chat() -> str:
    return ENGLISH_IOS_CHAT


@pytest.fixture
def german_android_chat() -> str:
    return GERMAN_ANDROID_CHAT


@pytest.fixture
def german_ios_chat() -> str:
    return GERMAN_IOS_CHAT


# =============================================================================
# Resource fixtures
# =============================================================================


@pytest.fixture
def indicator_table():
    """The bundled indicator table."""
    return load_indicator_table()


@pytest.fixture
def android_grammar(indicator_table):
    return indicator_table.grammar("android")


@pytest.fixture
def ios_grammar(indicator_table):
    return indicator_table.grammar("ios")


@pytest.fixture
def english_android(indicator_table):
    return indicator_table.get("english", "android")


@pytest.fixture
def english_ios(indicator_table):
    return indicator_table.get("english", "ios")


@pytest.fixture
def german_android(indicator_table):
    return indicator_table.get("german", "android")


@pytest.fixture
def plain_config() -> ParseConfig:
    """Config without anonymization or order columns."""
    return ParseConfig(anon_mode="off", order="none")


# =============================================================================
# File fixtures
# =============================================================================


@pytest.fixture
def english_android_file(tmp_path: Path) -> Path:
    """The English android export written to disk with a BOM and CRLF endings."""
    path = tmp_path / "_chat.txt"
    path.write_bytes(("\ufeff" + ENGLISH_ANDROID_CHAT.replace("\n", "\r\n")).encode("utf-8"))
    return path
