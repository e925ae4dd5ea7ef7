"""Tests for services.email."""

from unittest.mock import patch

import pytest

from services.email import format_error_body, send_error_email


def test_format_error_body_includes_traceback():
    try:
        raise RuntimeError("boom")
    except RuntimeError as e:
        body = format_error_body("generating the summary", e)
    assert body.startswith("An error occurred while generating the summary:")
    assert "RuntimeError: boom" in body


@pytest.mark.asyncio
async def test_send_skipped_without_addresses(settings):
    with patch("services.email.get_graph_client") as get_client:
        await send_error_email(settings, RuntimeError("boom"))
    get_client.assert_not_called()
