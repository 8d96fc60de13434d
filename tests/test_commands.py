"""Tests for reply formatting."""

from telegram_pm2.commands import (
    BOT_COMMANDS,
    NO_PROCESSES_TEXT,
    escape_markdown,
    format_help_text,
    format_process_list,
    format_restart_error_text,
    format_restart_text,
)
from telegram_pm2.pm2_client import ProcessDescriptor


def test_escape_markdown():
    assert escape_markdown("api") == "api"
    assert escape_markdown("my_app*[v2]`") == "my\\_app\\*\\[v2]\\`"


def test_format_process_list():
    text = format_process_list([
        ProcessDescriptor(name="api", status="online"),
        ProcessDescriptor(name="worker", status="errored"),
    ])
    assert text == "*PM2 Processes:*\n\napi - online\nworker - errored"


def test_format_process_list_empty():
    assert format_process_list([]) == NO_PROCESSES_TEXT


def test_restart_texts_contain_id_verbatim():
    assert "web-1" in format_restart_text("web-1")
    assert "web-1" in format_restart_error_text("web-1")


def test_restart_texts_keep_id_outside_bold():
    assert format_restart_text("a*b") == "*Restarting process* a\\*b"
    assert format_restart_error_text("a*b") == "*Error restarting process* a\\*b"


def test_help_text_links_url():
    assert "(https://example.org)" in format_help_text("https://example.org")


def test_bot_commands_are_valid_for_telegram():
    for cmd in BOT_COMMANDS:
        assert cmd["command"].islower()
        assert 0 < len(cmd["description"]) <= 256
