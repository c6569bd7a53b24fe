"""
Tests for the entry point: exit codes and the summary table.
"""

import os
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kubedrop import main as entry
from kubedrop.errors import TimedOut
from kubedrop.modules.api.models import WorkloadHandle
from kubedrop.modules.delivery import DeliveryReport
from kubedrop.modules.delivery.listing import parse_listing


@pytest.fixture
def report():
    return DeliveryReport(
        handle=WorkloadHandle(name="example", namespace="default", container="example"),
        remote_path="/rust_binary",
        archive_size=10240,
        listing=parse_listing("-rwxr-xr-x 1 root root 2048 Oct 19 03:46 /rust_binary"),
        first_output=b"hello from kubedrop\n",
    )


def test_success_prints_report(report):
    with patch.object(entry, "run", new_callable=AsyncMock, return_value=report), \
         patch.object(entry, "display_report") as display:
        assert entry.main(provider=MagicMock()) == 0

    display.assert_called_once_with(report)


def test_configuration_error_exits_1():
    provider = MagicMock()
    provider.get_cluster_config.side_effect = ValueError("KUBEDROP_PAYLOAD is required")

    assert entry.main(provider=provider) == 1


def test_delivery_error_exits_1():
    with patch.object(entry, "run", new_callable=AsyncMock, side_effect=TimedOut("example", 10)):
        assert entry.main(provider=MagicMock()) == 1


def test_display_report_renders_table(report):
    with patch.object(entry, "console") as console:
        entry.display_report(report)

    table = console.print.call_args[0][0]
    assert table.title == "Delivered to default/example"
    assert table.row_count == 5


def test_unreachable_api_server_exits_1(monkeypatch, tmp_path):
    """A refused connection is reported like any other delivery failure."""
    payload = tmp_path / "payload"
    payload.write_bytes(b"#!/bin/sh\necho hi\n")
    for name in ("KUBEDROP_TOKEN", "HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("KUBEDROP_API_URL", "http://127.0.0.1:1")
    monkeypatch.setenv("KUBEDROP_PAYLOAD", str(payload))
    monkeypatch.setenv("KUBEDROP_REQUEST_TIMEOUT", "5")

    assert entry.main() == 1
