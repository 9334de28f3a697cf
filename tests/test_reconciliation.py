"""Tests for the reconciliation connector with mocked HTTP responses."""

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from authority.connectors.base import BaseConnector
from authority.connectors.protocol import DraftProtocol, LegacyProtocol
from authority.connectors.reconciliation import (
    NO_PREVIEW_MESSAGE,
    ManifestState,
    ReconciliationConnector,
)
from authority.display import BufferContainer
from authority.errors import (
    ConnectorNotReady,
    MalformedResponse,
    ManifestUnavailable,
    NoCompatibleVersion,
    NotFound,
)

ENDPOINT = "https://lobid.org/gnd/reconcile"

MANIFEST = {
    "name": "GND reconciliation",
    "versions": ["0.1", "0.2", "0.3.0-alpha"],
    "view": {"url": "https://d-nb.info/gnd/{{id}}"},
    "preview": {"url": "https://lobid.org/gnd/{{id}}.preview"},
}

LEGACY_MANIFEST = {
    "versions": ["0.1", "0.2"],
    "view": {"url": "https://d-nb.info/gnd/{{id}}"},
}

DRAFT_RESPONSE = [
    {
        "result": [
            {
                "id": "118540238",
                "name": "Goethe, Johann Wolfgang von",
                "score": 87.5,
                "type": [{"name": "DifferentiatedPerson"}],
            },
            {
                "id": "116706279",
                "name": "Goethe, August von",
                "score": 52.0,
                "type": [{"name": "DifferentiatedPerson"}],
            },
        ]
    }
]


def _json_response(data):
    mock_resp = MagicMock()
    mock_resp.json.return_value = data
    mock_resp.raise_for_status = MagicMock()
    return mock_resp


def make_connector(manifest, **kwargs):
    with patch("httpx.get", return_value=_json_response(manifest)):
        return ReconciliationConnector(ENDPOINT, "person", **kwargs)


# -- Interface compliance --


def test_implements_base_connector():
    assert isinstance(make_connector(MANIFEST), BaseConnector)


def test_register_property():
    assert make_connector(MANIFEST).register == "person"


# -- Manifest / state --


def test_manifest_loaded_on_construction():
    with patch("httpx.get", return_value=_json_response(MANIFEST)) as mock_get:
        connector = ReconciliationConnector(ENDPOINT, "person")

    mock_get.assert_called_once()
    assert mock_get.call_args[0][0] == ENDPOINT
    assert connector.state is ManifestState.READY
    assert connector.version == "0.3.0-alpha"
    assert connector.manifest == MANIFEST


def test_manifest_without_versions_uses_default():
    connector = make_connector({"view": {"url": "x/{{id}}"}})
    assert connector.version == "0.1.0"


def test_not_ready_before_manifest():
    connector = ReconciliationConnector(ENDPOINT, "person", load=False)
    assert connector.state is ManifestState.CONSTRUCTED

    with pytest.raises(ConnectorNotReady):
        connector.query("Goethe")


def test_deferred_load():
    connector = ReconciliationConnector(ENDPOINT, "person", load=False)
    with patch("httpx.get", return_value=_json_response(LEGACY_MANIFEST)):
        connector.load_manifest()
    assert connector.state is ManifestState.READY
    assert connector.version == "0.2.0"


def test_manifest_fetch_failure_is_terminal():
    with patch("httpx.get", side_effect=httpx.ConnectError("refused")):
        connector = ReconciliationConnector(ENDPOINT, "person")

    assert connector.state is ManifestState.FAILED
    with pytest.raises(ManifestUnavailable):
        connector.query("Goethe")
    with pytest.raises(ManifestUnavailable):
        connector.info("118540238", BufferContainer())

    # No retry
    with patch("httpx.get") as mock_get:
        connector.load_manifest()
    mock_get.assert_not_called()
    assert connector.state is ManifestState.FAILED


def test_stored_failure_raised_fresh_each_call():
    with patch("httpx.get", side_effect=httpx.ConnectError("refused")):
        connector = ReconciliationConnector(ENDPOINT, "person")

    with pytest.raises(ManifestUnavailable) as first:
        connector.query("Goethe")
    with pytest.raises(ManifestUnavailable) as second:
        connector.query("Goethe")

    assert first.value is not second.value
    assert first.value.__cause__ is second.value.__cause__
    assert str(first.value) == str(second.value)


def test_stored_version_failure_keeps_type():
    connector = make_connector({"versions": ["1.0"]})

    with pytest.raises(NoCompatibleVersion) as exc_info:
        connector.get_record("118540238")

    assert isinstance(exc_info.value.__cause__, NoCompatibleVersion)


def test_manifest_not_json():
    mock_resp = MagicMock()
    mock_resp.json.side_effect = ValueError("Expecting value")
    with patch("httpx.get", return_value=mock_resp):
        connector = ReconciliationConnector(ENDPOINT, "person")

    assert connector.state is ManifestState.FAILED
    with pytest.raises(ManifestUnavailable):
        connector.get_record("118540238")


def test_no_compatible_version():
    connector = make_connector({"versions": ["1.0", "2.0"]})

    assert connector.state is ManifestState.FAILED
    with pytest.raises(NoCompatibleVersion):
        connector.query("Goethe")


# -- Query --


def test_query_draft_version():
    connector = make_connector(
        MANIFEST, prefix="gnd", process_lang="de", accept_lang="en"
    )

    with patch("httpx.post", return_value=_json_response(DRAFT_RESPONSE)) as mock_post:
        result = connector.query("Goethe")

    assert result.total_items == 2
    first = result.items[0]
    assert first.id == "gnd-118540238"
    assert first.label == "Goethe, Johann Wolfgang von"
    assert first.type == "DifferentiatedPerson"
    assert first.score == 87.5
    assert first.link == "https://d-nb.info/gnd/118540238"
    assert first.provider == "Reconciliation"

    mock_post.assert_called_once()
    call_args = mock_post.call_args
    assert call_args[0][0] == ENDPOINT
    assert call_args[1]["headers"]["Content-Type"] == "application/json"
    assert call_args[1]["headers"]["Accept-Language"] == "en"
    assert json.loads(call_args[1]["content"]) == {
        "queries": [{"query": "Goethe", "lang": "de"}]
    }


def test_query_legacy_version():
    connector = make_connector(LEGACY_MANIFEST, accept_lang="en")
    response = {
        "q0": {
            "result": [
                {"id": "118540238", "name": "Goethe", "type": [{"name": "Person"}]},
            ]
        }
    }

    with patch("httpx.post", return_value=_json_response(response)) as mock_post:
        result = connector.query("Goethe")

    assert connector.version == "0.2.0"
    assert result.items[0].type == [{"name": "Person"}]
    assert result.items[0].details == "Person"
    headers = mock_post.call_args[1]["headers"]
    assert headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert "Accept-Language" not in headers


def test_query_malformed_response():
    connector = make_connector(MANIFEST)

    with patch("httpx.post", return_value=_json_response({"unexpected": True})):
        with pytest.raises(MalformedResponse):
            connector.query("Goethe")


def test_query_reply_not_json():
    connector = make_connector(MANIFEST)
    mock_resp = MagicMock()
    mock_resp.json.side_effect = ValueError("Expecting value")

    with patch("httpx.post", return_value=mock_resp):
        with pytest.raises(MalformedResponse, match="not JSON"):
            connector.query("Goethe")


def test_protocol_chosen_once():
    assert isinstance(make_connector(MANIFEST)._protocol, DraftProtocol)
    assert isinstance(make_connector(LEGACY_MANIFEST)._protocol, LegacyProtocol)


# -- Info --


def test_info_without_preview_template():
    connector = make_connector(LEGACY_MANIFEST)
    container = BufferContainer()

    with patch("httpx.get") as mock_get:
        descriptor = connector.info("118540238", container)

    assert descriptor == {}
    assert container.content == NO_PREVIEW_MESSAGE
    mock_get.assert_not_called()


def test_info_renders_preview():
    connector = make_connector(MANIFEST, prefix="gnd")
    container = BufferContainer()
    mock_resp = MagicMock()
    mock_resp.text = "<div>Goethe preview</div>"
    mock_resp.raise_for_status = MagicMock()

    with patch("httpx.get", return_value=mock_resp) as mock_get:
        descriptor = connector.info("gnd-118540238", container)

    assert mock_get.call_args[0][0] == "https://lobid.org/gnd/118540238.preview"
    assert container.content == "<div>Goethe preview</div>"
    assert descriptor == {"id": "gnd-118540238"}


def test_info_percent_encodes_id():
    connector = make_connector(MANIFEST)
    mock_resp = MagicMock()
    mock_resp.text = "ok"

    with patch("httpx.get", return_value=mock_resp) as mock_get:
        connector.info("a/b c", BufferContainer())

    assert mock_get.call_args[0][0] == "https://lobid.org/gnd/a%2Fb%20c.preview"


def test_info_empty_key():
    connector = make_connector(MANIFEST)
    assert connector.info("", BufferContainer()) == {}


def test_info_transport_failure_leaves_container():
    connector = make_connector(MANIFEST)
    container = BufferContainer()

    with patch("httpx.get", side_effect=httpx.ConnectError("refused")):
        with pytest.raises(httpx.ConnectError):
            connector.info("118540238", container)

    assert container.content == ""


# -- Get record --


def test_get_record_returns_first_item():
    connector = make_connector(MANIFEST, prefix="gnd")

    with patch("httpx.post", return_value=_json_response(DRAFT_RESPONSE)) as mock_post:
        record = connector.get_record("gnd-118540238")

    assert record.id == "gnd-118540238"
    body = json.loads(mock_post.call_args[1]["content"])
    assert body["queries"][0]["query"] == "118540238"


def test_get_record_without_view_template():
    connector = make_connector({"versions": ["0.2"]})
    with pytest.raises(NotFound):
        connector.get_record("118540238")


def test_get_record_no_items():
    connector = make_connector(MANIFEST)
    with patch("httpx.post", return_value=_json_response([{"result": []}])):
        with pytest.raises(NotFound):
            connector.get_record("118540238")
