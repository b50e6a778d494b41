"""Encode and decode hosts.csv.

The file is comma separated with RFC 4180 quoting and a
``hostname,description,last_connected`` header. Decoding never raises on
malformed content: every problem is repaired or the row is dropped, and a
DecodeWarning describes what happened.
"""

import logging
import re
from collections.abc import Iterable, Iterator

from pydantic import ValidationError

from ..models.decode_warning import DecodeWarning
from ..models.host import Host, clean_description
from ..models.validation import (
    MAX_DESCRIPTION_LENGTH,
    is_valid_hostname,
    is_valid_timestamp,
)

logger = logging.getLogger(__name__)

HEADER = ("hostname", "description", "last_connected")
DELIMITER = ","
QUOTE = '"'
LINE_TERMINATOR = "\r\n"

_FIELD_END_RE = re.compile(r"[,\r\n]")
_NEEDS_QUOTING_RE = re.compile(r'[,"\r\n]')


class _Record:
    """One parsed row of raw field values."""

    __slots__ = ("number", "fields", "unterminated")

    def __init__(self, number: int, fields: list[str], unterminated: bool):
        self.number = number
        self.fields = fields
        self.unterminated = unterminated

    @property
    def is_blank(self) -> bool:
        return all(not value.strip() for value in self.fields)


def _read_quoted(text: str, pos: int) -> tuple[str, int, bool]:
    """Read a quoted field starting just after its opening quote.

    Returns the unescaped value, the position after the closing quote and
    whether the closing quote was found. An unterminated field takes the
    rest of the text as its content.
    """
    pieces: list[str] = []
    end = len(text)
    while True:
        quote = text.find(QUOTE, pos)
        if quote == -1:
            pieces.append(text[pos:])
            return "".join(pieces), end, False
        pieces.append(text[pos:quote])
        if quote + 1 < end and text[quote + 1] == QUOTE:
            pieces.append(QUOTE)
            pos = quote + 2
            continue
        return "".join(pieces), quote + 1, True


def _iter_records(text: str) -> Iterator[_Record]:
    """Split text into records, honouring quotes and any line ending style."""
    pos = 0
    end = len(text)
    number = 0
    while pos < end:
        number += 1
        fields: list[str] = []
        unterminated = False
        while True:
            if pos < end and text[pos] == QUOTE:
                value, pos, closed = _read_quoted(text, pos + 1)
                unterminated = unterminated or not closed
                # Stray characters between the closing quote and the delimiter are kept
                match = _FIELD_END_RE.search(text, pos)
                stop = match.start() if match else end
                if stop > pos:
                    value += text[pos:stop]
                pos = stop
            else:
                match = _FIELD_END_RE.search(text, pos)
                stop = match.start() if match else end
                value = text[pos:stop]
                pos = stop
            # NUL is removed per value, after tokenising
            fields.append(value.replace("\x00", ""))

            if pos >= end:
                break
            if text[pos] == DELIMITER:
                pos += 1
                continue
            # \r\n, \n and a lone \r all end the record
            if text[pos] == "\r" and pos + 1 < end and text[pos + 1] == "\n":
                pos += 2
            else:
                pos += 1
            break
        yield _Record(number, fields, unterminated)


def _to_text(raw: bytes | str) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8-sig", errors="replace")
    # Lone surrogates become U+FFFD, as invalid bytes do
    return raw.removeprefix("\ufeff").encode("utf-8", "surrogatepass").decode("utf-8", errors="replace")


def _is_header(record: _Record) -> bool:
    return record.fields[0].strip().lower() == HEADER[0]


def _decode_record(
    record: _Record, expected_fields: int, warnings: list[DecodeWarning]
) -> Host | None:
    """Turn one record into a Host, repairing what can be repaired."""
    fields = record.fields
    row = record.number

    if record.unterminated:
        warnings.append(DecodeWarning(row=row, message="unterminated quoted field"))
    if len(fields) < expected_fields:
        missing = ", ".join(HEADER[len(fields) : expected_fields])
        warnings.append(DecodeWarning(row=row, message=f"missing field(s): {missing}"))
    elif len(fields) > len(HEADER):
        warnings.append(
            DecodeWarning(row=row, message=f"ignoring {len(fields) - len(HEADER)} extra field(s)")
        )

    hostname = fields[0].strip()
    if not is_valid_hostname(hostname):
        shown = hostname if len(hostname) <= 80 else hostname[:77] + "..."
        warnings.append(
            DecodeWarning(row=row, field="hostname", message=f"invalid hostname '{shown}', row dropped")
        )
        return None

    description = clean_description(fields[1]) if len(fields) > 1 else ""
    if len(description) > MAX_DESCRIPTION_LENGTH:
        warnings.append(
            DecodeWarning(
                row=row,
                field="description",
                message=f"description truncated to {MAX_DESCRIPTION_LENGTH} characters",
            )
        )
        description = description[:MAX_DESCRIPTION_LENGTH].strip()

    last_connected: str | None = fields[2].strip() if len(fields) > 2 else ""
    if last_connected and not is_valid_timestamp(last_connected):
        warnings.append(
            DecodeWarning(
                row=row,
                field="last_connected",
                message=f"unreadable timestamp '{last_connected[:40]}', treated as never connected",
            )
        )
        last_connected = None

    try:
        return Host(hostname=hostname, description=description, last_connected=last_connected or None)
    except ValidationError as e:
        warnings.append(DecodeWarning(row=row, message=f"rejected row: {e.errors()[0]['msg']}"))
        return None


def decode_hosts(raw: bytes | str) -> tuple[list[Host], list[DecodeWarning]]:
    """Decode hosts.csv content.

    Args:
        raw: File content. Bytes are decoded as UTF-8 with invalid sequences
            replaced by U+FFFD.

    Returns:
        The decoded hosts in file order and the warnings collected on the way.
    """
    text = _to_text(raw)
    hosts: list[Host] = []
    warnings: list[DecodeWarning] = []
    expected_fields = len(HEADER)
    first = True

    for record in _iter_records(text):
        if record.is_blank:
            continue
        if first:
            first = False
            if _is_header(record):
                # Files from before last_connected existed have two columns
                expected_fields = max(2, min(len(record.fields), len(HEADER)))
                continue
        host = _decode_record(record, expected_fields, warnings)
        if host is not None:
            hosts.append(host)

    for warning in warnings:
        logger.debug(f"hosts.csv {warning}")
    if warnings:
        logger.warning(f"Decoded {len(hosts)} hosts with {len(warnings)} warning(s)")
    else:
        logger.debug(f"Decoded {len(hosts)} hosts")

    return hosts, warnings


def _quote(value: str) -> str:
    if _NEEDS_QUOTING_RE.search(value):
        return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE
    return value


def encode_hosts(hosts: Iterable[Host]) -> bytes:
    """Encode hosts as hosts.csv content, header included.

    Status is not written; it only ever comes from a probe.
    """
    lines = [DELIMITER.join(HEADER)]
    for host in hosts:
        lines.append(
            DELIMITER.join(
                _quote(value)
                for value in (host.hostname, host.description, host.last_connected or "")
            )
        )
    return (LINE_TERMINATOR.join(lines) + LINE_TERMINATOR).encode("utf-8", errors="replace")
