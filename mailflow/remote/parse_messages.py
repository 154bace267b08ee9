import base64
import html
from datetime import datetime, timezone
from email.utils import parseaddr, parsedate_to_datetime
from typing import Optional

import chardet
from bs4 import BeautifulSoup
from loguru import logger

from mailflow.models import TRASH_LABEL, Email


def _decode_base64url(data: str) -> bytes:
    """Gmail bodies are base64url, sometimes without padding."""
    if not data:
        return b""
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def _decode_text(data: bytes, charset: Optional[str]) -> str:
    if not data:
        return ""
    if charset:
        try:
            return data.decode(charset, "replace")
        except LookupError:
            pass
    return data.decode(chardet.detect(data)["encoding"] or "utf-8", "replace")


def _headers(part: dict) -> dict[str, str]:
    return {h.get("name", "").lower(): h.get("value", "") for h in part.get("headers", [])}


def _charset(part: dict) -> Optional[str]:
    content_type = _headers(part).get("content-type", "")
    for param in content_type.split(";")[1:]:
        key, _, value = param.strip().partition("=")
        if key.lower() == "charset":
            return value.strip('"') or None
    return None


def _part_text(part: dict) -> str:
    data = _decode_base64url(part.get("body", {}).get("data", ""))
    return _decode_text(data, _charset(part))


def html_to_text(markup: str) -> str:
    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text(separator=" ", strip=True)


def extract_body(part: dict) -> str:
    """Plain text of a message payload, preferring text/plain over text/html."""
    plain: list[str] = []
    markup: list[str] = []

    def walk(node: dict) -> None:
        mime = node.get("mimeType", "")
        if node.get("filename"):
            return  # attachment
        if mime == "text/plain":
            plain.append(_part_text(node))
        elif mime == "text/html":
            markup.append(_part_text(node))
        for child in node.get("parts", []):
            walk(child)

    walk(part)
    if any(text.strip() for text in plain):
        return "\n".join(plain).strip()
    if markup:
        return html_to_text("\n".join(markup))
    return ""


def _received_at(headers: dict[str, str], internal_date: Optional[str]) -> datetime:
    date_header = headers.get("date")
    if date_header:
        try:
            parsed = parsedate_to_datetime(date_header)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)
        except (TypeError, ValueError):
            logger.debug(f"unparseable Date header {date_header!r}, using internalDate")

    if internal_date:
        return datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc)
    return datetime.now(timezone.utc)


def _mailbox(labels: list[str]) -> str:
    for candidate in (TRASH_LABEL, "INBOX", "SENT", "DRAFT"):
        if candidate in labels:
            return candidate
    return "INBOX"


def parse_gmail_message(data: dict, owner_id: str) -> Email:
    """Map a Gmail ``users.messages.get?format=full`` response onto an Email."""
    payload = data.get("payload", {})
    headers = _headers(payload)
    sender_name, sender_address = parseaddr(headers.get("from", ""))
    labels = list(data.get("labelIds", []))

    email = Email(
        id=data["id"],
        owner_id=owner_id,
        thread_id=data.get("threadId"),
        mailbox=_mailbox(labels),
        subject=headers.get("subject", ""),
        preview=html.unescape(data.get("snippet", "")),
        body_text=extract_body(payload),
        sender_name=sender_name,
        sender_address=sender_address,
        received_at=_received_at(headers, data.get("internalDate")),
        is_read="UNREAD" not in labels,
        labels=labels,
    )
    email.trashed = email.is_trash()
    return email
