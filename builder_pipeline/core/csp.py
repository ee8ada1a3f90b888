"""Content-security allow-list validation and remediation for image origins."""

from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from builder_pipeline.models import BuilderRecord

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}
_ENTRY_PATTERN = re.compile(r'"([^"]+)"')


class CSPPolicyError(RuntimeError):
    """Raised when the allow-list cannot be read."""


class CSPRemediationError(RuntimeError):
    """Raised when new origins cannot be written to the allow-list."""


def origin_of(url: str) -> Optional[str]:
    """``scheme://host[:port]`` for http(s) URLs, ``data:`` for inline data."""
    if not url:
        return None
    value = url.strip()
    if value.lower().startswith("data:"):
        return "data:"
    parsed = urlparse(value)
    scheme = parsed.scheme.lower()
    if scheme not in _DEFAULT_PORTS or not parsed.hostname:
        return None
    origin = f"{scheme}://{parsed.hostname.lower()}"
    try:
        port = parsed.port
    except ValueError:
        return None
    if port and port != _DEFAULT_PORTS[scheme]:
        origin = f"{origin}:{port}"
    return origin


def entry_allows(entry: str, origin: str) -> bool:
    """Whether one allow-list entry admits ``origin``.

    Entries may be exact origins, scheme sources (``data:``, ``https:``),
    bare hosts, or a single-level wildcard such as ``https://*.cdn.example.com``.
    """
    value = entry.strip().lower().rstrip("/")
    if not value or value.startswith("'"):
        return False
    if value == origin:
        return True

    origin_scheme, _, origin_host = origin.partition("://")
    if value.endswith(":") and "/" not in value:
        return value == f"{origin_scheme}:" or value == origin

    if "://" in value:
        scheme, rest = value.split("://", 1)
        if scheme != origin_scheme:
            return False
    elif origin_scheme in _DEFAULT_PORTS:
        rest = value
    else:
        return False

    host = rest.split("/", 1)[0]
    if host.startswith("*."):
        suffix = host[1:]
        if not origin_host.endswith(suffix):
            return False
        label = origin_host[: -len(suffix)]
        return bool(label) and "." not in label
    return host == origin_host


@dataclass(frozen=True)
class CSPPolicy:
    entries: Tuple[str, ...] = ()

    def allows(self, origin: str) -> bool:
        return any(entry_allows(entry, origin) for entry in self.entries)

    def __contains__(self, entry: str) -> bool:
        return entry in self.entries


class FilePolicyStore:
    """Allow-list kept as a quoted-string list inside a JS/JSON headers file."""

    def __init__(self, path, directive: str = "img-src") -> None:
        self.path = Path(path)
        self.directive = directive
        self._pattern = re.compile(
            rf"(?P<quote>['\"]){re.escape(directive)}(?P=quote)\s*:\s*\[(?P<body>.*?)\]",
            re.DOTALL,
        )

    def _read(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CSPPolicyError(f"cannot read {self.path}: {exc}") from exc

    def _find(self, content: str) -> re.Match:
        match = self._pattern.search(content)
        if match is None:
            raise CSPPolicyError(f"no {self.directive!r} list found in {self.path}")
        return match

    def load(self) -> CSPPolicy:
        match = self._find(self._read())
        return CSPPolicy(tuple(_ENTRY_PATTERN.findall(match.group("body"))))

    def append(self, origins: Sequence[str]) -> List[str]:
        """Append missing origins before the closing bracket, leaving every other byte alone."""
        try:
            content = self._read()
            match = self._find(content)
        except CSPPolicyError as exc:
            raise CSPRemediationError(str(exc)) from exc

        body = match.group("body")
        present = set(_ENTRY_PATTERN.findall(body))
        missing = [origin for origin in dict.fromkeys(origins) if origin not in present]
        if not missing:
            return []

        stripped = body.rstrip()
        trailing = body[len(stripped):]
        trailing_comma = stripped.endswith(",")
        core = stripped[:-1] if trailing_comma else stripped

        if "\n" in body:
            indents = re.findall(r"\n([ \t]*)\"", body)
            separator = ",\n" + (indents[-1] if indents else "  ")
        else:
            separator = ", "
        addition = separator.join(f'"{origin}"' for origin in missing)
        if core.strip():
            new_core = core + separator + addition
        else:
            new_core = (separator[1:] if "\n" in body else "") + addition
        new_body = new_core + ("," if trailing_comma else "") + trailing

        updated = content[: match.start("body")] + new_body + content[match.end("body"):]
        self._write(updated)
        return missing

    def _write(self, content: str) -> None:
        try:
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=f".{self.path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(content)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as exc:
            raise CSPRemediationError(f"cannot write {self.path}: {exc}") from exc


class MemoryPolicyStore:
    def __init__(self, entries: Iterable[str] = ()) -> None:
        self.entries = list(entries)

    def load(self) -> CSPPolicy:
        return CSPPolicy(tuple(self.entries))

    def append(self, origins: Sequence[str]) -> List[str]:
        missing = [origin for origin in dict.fromkeys(origins) if origin not in self.entries]
        self.entries.extend(missing)
        return missing


@dataclass(frozen=True)
class CSPViolation:
    url: str
    origin: str
    source: str


@dataclass
class CSPValidation:
    violations: List[CSPViolation] = field(default_factory=list)
    new_origins: List[str] = field(default_factory=list)

    @property
    def compliant(self) -> bool:
        return not self.violations


@dataclass
class RemediationResult:
    added: List[str] = field(default_factory=list)
    already_present: List[str] = field(default_factory=list)


@dataclass
class CSPCheck:
    """What the engine did for one record."""

    validation: CSPValidation
    remediation: Optional[RemediationResult] = None
    dropped_photos: int = 0
    error: Optional[str] = None


class CSPComplianceEngine:
    def __init__(self, store, *, auto_remediate: bool = True) -> None:
        self.store = store
        self.auto_remediate_enabled = auto_remediate

    def validate(self, photo_urls: Iterable[str], site_url: Optional[str] = None) -> CSPValidation:
        policy = self.store.load()
        result = CSPValidation()
        checks = [(url, "photo") for url in photo_urls]
        if site_url:
            checks.append((site_url, "site"))

        for url, source in checks:
            origin = origin_of(url)
            if origin is None:
                logger.debug("Skipping CSP check for unparseable URL %s", url)
                continue
            if policy.allows(origin):
                continue
            result.violations.append(CSPViolation(url=url, origin=origin, source=source))
            if origin not in result.new_origins:
                result.new_origins.append(origin)
        return result

    def auto_remediate(self, new_origins: Sequence[str]) -> RemediationResult:
        """Append origins the allow-list does not admit yet; repeat calls add nothing."""
        try:
            policy = self.store.load()
        except CSPPolicyError as exc:
            raise CSPRemediationError(str(exc)) from exc

        wanted = list(dict.fromkeys(new_origins))
        already = [origin for origin in wanted if policy.allows(origin) or origin in policy]
        missing = [origin for origin in wanted if origin not in already]
        added = self.store.append(missing) if missing else []
        if added:
            logger.info("Added %d origin(s) to the allow-list: %s", len(added), ", ".join(added))
        return RemediationResult(added=list(added), already_present=already)

    def check_record(self, record: BuilderRecord) -> CSPCheck:
        """Validate a record's photos and site, then remediate or drop per policy."""
        validation = self.validate([photo.url for photo in record.photos], record.website)
        check = CSPCheck(validation=validation)
        if validation.compliant:
            logger.info("All photo origins allowed for %s", record.name)
            return check

        logger.warning(
            "%d CSP violation(s) for %s across %s",
            len(validation.violations),
            record.name,
            ", ".join(validation.new_origins),
        )
        if self.auto_remediate_enabled:
            try:
                check.remediation = self.auto_remediate(validation.new_origins)
            except CSPRemediationError as exc:
                check.error = str(exc)
                logger.warning("Allow-list update failed for %s; photos kept but may be blocked: %s", record.name, exc)
            return check

        blocked = {violation.origin for violation in validation.violations if violation.source == "photo"}
        kept = [photo for photo in record.photos if origin_of(photo.url) not in blocked]
        check.dropped_photos = len(record.photos) - len(kept)
        record.photos = kept
        if check.dropped_photos:
            logger.info("Dropped %d photo(s) from disallowed origins for %s", check.dropped_photos, record.name)
        return check
