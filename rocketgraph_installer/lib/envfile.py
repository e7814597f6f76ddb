from __future__ import annotations

import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator, List, Literal, Optional

LineKind = Literal["blank", "comment", "active", "disabled"]

_ACTIVE_RE = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_.]*)\s*=(.*)$")
_DISABLED_RE = re.compile(r"^\s*#\s*([A-Za-z_][A-Za-z0-9_.]*)\s*=(.*)$")


@dataclass(frozen=True)
class EnvLine:
    kind: LineKind
    raw: str  # exact text including the line ending
    key: Optional[str] = None
    value: Optional[str] = None

    @property
    def eol(self) -> str:
        body = self.raw.rstrip("\r\n")
        return self.raw[len(body):]


def _clean_value(value: str) -> str:
    v = value.strip()
    if len(v) >= 2 and v[0] == v[-1] and v[0] in {'"', "'"}:
        v = v[1:-1]
    return v


def parse_line(raw: str) -> EnvLine:
    body = raw.rstrip("\r\n")
    if not body.strip():
        return EnvLine(kind="blank", raw=raw)

    m = _DISABLED_RE.match(body)
    if m:
        return EnvLine(kind="disabled", raw=raw, key=m.group(1), value=_clean_value(m.group(2)))

    if body.lstrip().startswith("#"):
        return EnvLine(kind="comment", raw=raw)

    m = _ACTIVE_RE.match(body)
    if m:
        return EnvLine(kind="active", raw=raw, key=m.group(1), value=_clean_value(m.group(2)))

    # Anything unparseable is carried through untouched.
    return EnvLine(kind="comment", raw=raw)


class ConfigDocument:
    """An environment file as an ordered list of line records.

    Lines that are never touched by an operation render back byte-for-byte.
    Mutating operations rewrite only the single line they target.
    """

    def __init__(self, lines: Optional[List[EnvLine]] = None) -> None:
        self._lines: List[EnvLine] = list(lines or [])

    @classmethod
    def parse(cls, text: str) -> "ConfigDocument":
        return cls([parse_line(raw) for raw in text.splitlines(keepends=True)])

    @classmethod
    def load(cls, path: str | Path) -> "ConfigDocument":
        # newline="" keeps CRLF endings intact for byte-identical rewrites.
        with open(path, "r", encoding="utf-8", newline="") as f:
            return cls.parse(f.read())

    def render(self) -> str:
        return "".join(line.raw for line in self._lines)

    def save(self, path: str | Path) -> None:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(self.render())

    def copy(self) -> "ConfigDocument":
        return ConfigDocument(self._lines)

    def __iter__(self) -> Iterator[EnvLine]:
        return iter(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConfigDocument):
            return NotImplemented
        return self.render() == other.render()

    # queries

    def _index(self, key: str, kind: LineKind) -> Optional[int]:
        for i, line in enumerate(self._lines):
            if line.kind == kind and line.key == key:
                return i
        return None

    def is_active(self, key: str) -> bool:
        return self._index(key, "active") is not None

    def is_known(self, key: str) -> bool:
        """True when the key appears as an active or disabled line."""
        return self.is_active(key) or self._index(key, "disabled") is not None

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        i = self._index(key, "active")
        if i is None:
            return default
        return self._lines[i].value

    def keys(self) -> List[str]:
        """Active and disabled keys, first occurrence order."""
        seen: List[str] = []
        for line in self._lines:
            if line.key and line.key not in seen:
                seen.append(line.key)
        return seen

    def active_keys(self) -> List[str]:
        return [line.key for line in self._lines if line.kind == "active" and line.key]

    def line_for(self, key: str) -> Optional[str]:
        """The defining line for a key (active preferred), without line ending."""
        i = self._index(key, "active")
        if i is None:
            i = self._index(key, "disabled")
        if i is None:
            return None
        return self._lines[i].raw.rstrip("\r\n")

    # mutations

    def _newline(self) -> str:
        for line in self._lines:
            if line.eol:
                return line.eol
        return "\n"

    def activate(self, key: str, value: Optional[str] = None) -> bool:
        """Turn the first disabled `#KEY=...` line into an active one.

        Keeps the disabled line's value when `value` is None. Returns False
        when the key is already active or has no disabled line.
        """

        if self.is_active(key):
            return False
        i = self._index(key, "disabled")
        if i is None:
            return False
        line = self._lines[i]
        new_value = line.value if value is None else value
        self._lines[i] = EnvLine(kind="active", raw=f"{key}={new_value}{line.eol}", key=key, value=new_value)
        return True

    def set_active(self, key: str, value: str) -> None:
        """Make `key` active with `value`: rewrite, activate, or append."""

        i = self._index(key, "active")
        if i is not None:
            line = self._lines[i]
            self._lines[i] = replace(line, raw=f"{key}={value}{line.eol}", value=value)
            return
        if self.activate(key, value):
            return
        self.append(key, value)

    def append(self, key: str, value: str) -> None:
        if self._lines and not self._lines[-1].eol:
            last = self._lines[-1]
            self._lines[-1] = replace(last, raw=last.raw + self._newline())
        self._lines.append(EnvLine(kind="active", raw=f"{key}={value}{self._newline()}", key=key, value=value))

    def disable(self, key: str) -> bool:
        """Comment out every active line for `key`."""

        changed = False
        for i, line in enumerate(self._lines):
            if line.kind == "active" and line.key == key:
                self._lines[i] = EnvLine(kind="disabled", raw="#" + line.raw, key=key, value=line.value)
                changed = True
        return changed


def tls_enabled(doc: ConfigDocument, *, public_cert_key: str, private_key_key: str) -> bool:
    """TLS is on iff both the certificate and private key entries are active."""

    return doc.is_active(public_cert_key) and doc.is_active(private_key_key)
