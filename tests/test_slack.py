import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from ncov_ingest.errors import NotificationError  # noqa: E402
from ncov_ingest.notifiers import SlackNotifier  # noqa: E402


class _Response:
    def __init__(self, body: dict) -> None:
        self.body = body

    def raise_for_status(self) -> None:
        return None

    def json(self) -> dict:
        return self.body


class _Session:
    def __init__(self, responses: dict[str, dict] | None = None) -> None:
        self.headers: dict[str, str] = {}
        self.calls: list[tuple[str, dict]] = []
        self.responses = responses or {}

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        for suffix, body in self.responses.items():
            if url.endswith(suffix):
                return _Response(body)
        return _Response({"ok": True})


def test_post_sends_message_to_each_channel() -> None:
    session = _Session()
    notifier = SlackNotifier(token="xoxb-1", channels=("a", "b"), session=session)

    notifier.post("2 new records")

    assert session.headers["Authorization"] == "Bearer xoxb-1"
    assert [kwargs["json"]["channel"] for _, kwargs in session.calls] == ["a", "b"]
    assert all(url.endswith("/chat.postMessage") for url, _ in session.calls)


def test_upload_file_uses_external_upload_flow(tmp_path: Path) -> None:
    attachment = tmp_path / "flagged_annotations.txt"
    attachment.write_text("line 1: malformed JSON; record dropped\n")
    session = _Session(
        {
            "files.getUploadURLExternal": {
                "ok": True,
                "upload_url": "https://files.slack.test/upload/1",
                "file_id": "F1",
            }
        }
    )
    notifier = SlackNotifier(token="xoxb-1", channels=("C0123ABCD",), session=session)

    notifier.upload_file(attachment, title="Flagged annotations")

    urls = [url for url, _ in session.calls]
    assert urls == [
        "https://slack.com/api/files.getUploadURLExternal",
        "https://files.slack.test/upload/1",
        "https://slack.com/api/files.completeUploadExternal",
    ]
    complete = session.calls[-1][1]["json"]
    assert complete == {"files": [{"id": "F1", "title": "Flagged annotations"}], "channel_id": "C0123ABCD"}


def test_api_error_raises() -> None:
    session = _Session({"chat.postMessage": {"ok": False, "error": "channel_not_found"}})
    notifier = SlackNotifier(token="xoxb-1", channels=("nope",), session=session)

    with pytest.raises(NotificationError, match="channel_not_found"):
        notifier.post("hello")


def test_requires_channels() -> None:
    with pytest.raises(ValueError):
        SlackNotifier(token="xoxb-1", channels=(), session=_Session())


def test_upload_file_resolves_channel_names_to_ids(tmp_path: Path) -> None:
    attachment = tmp_path / "flagged_annotations.txt"
    attachment.write_text("line 1: malformed JSON; record dropped\n")
    session = _Session(
        {
            "conversations.list": {
                "ok": True,
                "channels": [
                    {"id": "C000000001", "name": "general"},
                    {"id": "C0NCOV0001", "name": "ncov-gisaid-updates"},
                ],
                "response_metadata": {"next_cursor": ""},
            },
            "files.getUploadURLExternal": {
                "ok": True,
                "upload_url": "https://files.slack.test/upload/1",
                "file_id": "F1",
            },
        }
    )
    notifier = SlackNotifier(
        token="xoxb-1", channels=("#ncov-gisaid-updates", "G0PRIVATE1"), session=session
    )

    notifier.upload_file(attachment, title="Flagged annotations")
    notifier.upload_file(attachment, title="Flagged annotations")

    urls = [url for url, _ in session.calls]
    assert urls.count("https://slack.com/api/conversations.list") == 1
    completed = [
        kwargs["json"]["channel_id"]
        for url, kwargs in session.calls
        if url.endswith("files.completeUploadExternal")
    ]
    assert completed == ["C0NCOV0001", "G0PRIVATE1", "C0NCOV0001", "G0PRIVATE1"]


def test_upload_file_fails_before_sending_for_unknown_channel(tmp_path: Path) -> None:
    attachment = tmp_path / "flagged_annotations.txt"
    attachment.write_text("line 1: malformed JSON; record dropped\n")
    session = _Session({"conversations.list": {"ok": True, "channels": []}})
    notifier = SlackNotifier(token="xoxb-1", channels=("missing",), session=session)

    with pytest.raises(NotificationError, match="missing"):
        notifier.upload_file(attachment, title="Flagged annotations")

    assert [url for url, _ in session.calls] == ["https://slack.com/api/conversations.list"]
