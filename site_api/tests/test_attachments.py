"""Tests for attachment resolution and send-time loading."""

from unittest.mock import AsyncMock

from site_api.services.mail.attachments import (
    LOCAL_CONTENT_TYPE,
    ResolvedAttachment,
    load_attachment_content,
    resolve_attachments,
)


async def test_existing_local_file_resolves(tmp_path):
    (tmp_path / "portfolio.pdf").write_bytes(b"%PDF-1.4")

    result = await resolve_attachments(["portfolio.pdf"], tmp_path)

    assert len(result) == 1
    assert result[0].filename == "portfolio.pdf"
    assert result[0].source == (tmp_path / "portfolio.pdf").resolve()
    assert result[0].content_type == LOCAL_CONTENT_TYPE
    assert result[0].is_remote is False


async def test_missing_file_is_dropped_not_raised(tmp_path):
    result = await resolve_attachments(["nope.pdf"], tmp_path)
    assert result == []


async def test_https_url_is_kept_without_checking(tmp_path):
    url = "https://cdn.example.com/decks/Company%20Deck.pdf"

    result = await resolve_attachments([url], tmp_path)

    assert len(result) == 1
    assert result[0].is_remote is True
    assert result[0].source == url
    assert result[0].filename == "Company Deck.pdf"


async def test_url_without_host_is_skipped(tmp_path):
    assert await resolve_attachments(["https:///broken"], tmp_path) == []


async def test_unparseable_url_is_skipped_and_rest_kept(tmp_path):
    (tmp_path / "b.pdf").write_bytes(b"b")

    result = await resolve_attachments(["https://[broken/x.pdf", "b.pdf"], tmp_path)

    assert [a.filename for a in result] == ["b.pdf"]


async def test_path_escaping_identifiers_are_rejected(tmp_path):
    outside = tmp_path.parent / "secret.pdf"
    outside.write_bytes(b"secret")
    nested = tmp_path / "sub"
    nested.mkdir()
    (nested / "inner.pdf").write_bytes(b"inner")

    result = await resolve_attachments(
        ["../secret.pdf", "sub/inner.pdf", "..", "/etc/passwd", "sub\\inner.pdf"],
        tmp_path,
    )

    assert result == []


async def test_order_is_preserved_and_blanks_skipped(tmp_path):
    (tmp_path / "a.pdf").write_bytes(b"a")
    (tmp_path / "b.pdf").write_bytes(b"b")

    result = await resolve_attachments(
        ["b.pdf", "", "https://x.example.com/c.pdf", "missing.pdf", "a.pdf"], tmp_path
    )

    assert [a.filename for a in result] == ["b.pdf", "c.pdf", "a.pdf"]


async def test_load_local_reads_whole_file(tmp_path):
    path = tmp_path / "deck.pdf"
    path.write_bytes(b"%PDF-1.7 content")
    attachment = ResolvedAttachment(
        filename="deck.pdf", source=path, content_type=LOCAL_CONTENT_TYPE
    )

    content, content_type = await load_attachment_content(attachment)

    assert content == b"%PDF-1.7 content"
    assert content_type == "application/pdf"


async def test_load_remote_uses_response_content_type(mocker):
    mocker.patch(
        "site_api.services.mail.attachments.fetch_bytes",
        new_callable=AsyncMock,
        return_value=(b"png-bytes", "image/png; charset=binary"),
    )
    attachment = ResolvedAttachment(filename="logo.png", source="https://x.example.com/logo.png")

    content, content_type = await load_attachment_content(attachment)

    assert content == b"png-bytes"
    assert content_type == "image/png"


async def test_load_remote_guesses_type_from_filename(mocker):
    mocker.patch(
        "site_api.services.mail.attachments.fetch_bytes",
        new_callable=AsyncMock,
        return_value=(b"data", "application/octet-stream"),
    )
    attachment = ResolvedAttachment(filename="brief.pdf", source="https://x.example.com/brief.pdf")

    _, content_type = await load_attachment_content(attachment)

    assert content_type == "application/pdf"


async def test_unreachable_remote_returns_none(mocker):
    mocker.patch(
        "site_api.services.mail.attachments.fetch_bytes",
        new_callable=AsyncMock,
        return_value=None,
    )
    attachment = ResolvedAttachment(filename="gone.pdf", source="https://x.example.com/gone.pdf")

    assert await load_attachment_content(attachment) is None
