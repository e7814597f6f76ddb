from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..errors import Advisory, PermissionDenied, TemplateFetchFailed
from ..settings import InstallerSettings
from .envfile import ConfigDocument

logger = logging.getLogger(__name__)

ENV_FILE_MODE = 0o600


@dataclass(frozen=True)
class ConfigOverrides:
    """Command-line values that only take effect on a fresh install."""

    http_port: Optional[int] = None
    https_port: Optional[int] = None
    license_path: Optional[str] = None
    enterprise: bool = False

    def supplied(self) -> List[str]:
        names: List[str] = []
        if self.http_port is not None:
            names.append("--http-port")
        if self.https_port is not None:
            names.append("--https-port")
        if self.license_path:
            names.append("--license")
        if self.enterprise:
            names.append("--enterprise")
        return names


@dataclass(frozen=True)
class ConfigWarning:
    key: str
    template_line: str
    disabled_locally: bool = False

    def message(self, env_file: str = ".env") -> str:
        if self.disabled_locally:
            return f"{self.key} is disabled in {env_file}; template default: {self.template_line}"
        return f"New setting {self.key} is not in {env_file}; template default: {self.template_line}"


@dataclass
class ReconcileResult:
    document: ConfigDocument
    warnings: List[ConfigWarning] = field(default_factory=list)
    fresh: bool = False
    advisories: List[Advisory] = field(default_factory=list)


def template_warnings(template: ConfigDocument, local: ConfigDocument) -> List[ConfigWarning]:
    """Template keys (active or disabled) that are not active in the local document."""

    out: List[ConfigWarning] = []
    for key in template.keys():
        if local.is_active(key):
            continue
        out.append(
            ConfigWarning(
                key=key,
                template_line=template.line_for(key) or f"#{key}=",
                disabled_locally=local.is_known(key),
            )
        )
    return out


def _conventional_license(directory: Path, settings: InstallerSettings) -> Optional[Path]:
    candidate = directory / settings.license_file_name
    return candidate if candidate.is_file() else None


def _apply_fresh_overrides(
    doc: ConfigDocument,
    overrides: ConfigOverrides,
    *,
    settings: InstallerSettings,
    directory: Path,
    alternate_db_image: bool,
) -> List[Advisory]:
    advisories: List[Advisory] = []

    if overrides.http_port is not None:
        doc.set_active(settings.http_port_key, str(overrides.http_port))
        logger.info("Set %s=%s", settings.http_port_key, overrides.http_port)

    if overrides.https_port is not None:
        doc.set_active(settings.https_port_key, str(overrides.https_port))
        logger.info("Set %s=%s", settings.https_port_key, overrides.https_port)

    license_path: Optional[str] = None
    if overrides.license_path:
        license_path = str(Path(overrides.license_path).expanduser().resolve())
    else:
        found = _conventional_license(directory, settings)
        if found is not None:
            license_path = str(found.resolve())
    if license_path:
        doc.set_active(settings.license_key, license_path)
        logger.info("Set %s=%s", settings.license_key, license_path)

    if overrides.enterprise:
        if doc.disable(settings.auth_restriction_key):
            logger.info("Enterprise mode: disabled %s", settings.auth_restriction_key)
        else:
            logger.info("Enterprise mode: %s not active in template; nothing to disable", settings.auth_restriction_key)

    if alternate_db_image:
        if doc.activate(settings.db_image_key):
            logger.info("Activated %s=%s for this architecture", settings.db_image_key, doc.get(settings.db_image_key))
        elif not doc.is_active(settings.db_image_key):
            advisories.append(
                Advisory(
                    source="config",
                    message=f"Template has no {settings.db_image_key} entry; the default database image may not run on this architecture",
                )
            )

    return advisories


def reconcile(
    template: Optional[ConfigDocument],
    local_path: str | Path,
    overrides: ConfigOverrides,
    *,
    settings: InstallerSettings,
    alternate_db_image: bool = False,
) -> ReconcileResult:
    """Reconcile the downloaded template with the local environment file.

    Fresh install (no local file): adopt the template and apply overrides.
    Re-run: the local file is authoritative and left untouched; overrides are
    ignored and template keys missing from it are reported as warnings.

    `template` is None when the download failed; that is fatal only for a
    fresh install.
    """

    path = Path(local_path)
    env_name = path.name

    if not path.exists():
        if template is None:
            raise TemplateFetchFailed(
                f"Cannot create {env_name}: the environment template could not be downloaded"
            )
        logger.info("Creating %s from template", env_name)
        doc = template.copy()
        advisories = _apply_fresh_overrides(
            doc,
            overrides,
            settings=settings,
            directory=path.parent,
            alternate_db_image=alternate_db_image,
        )
        return ReconcileResult(document=doc, fresh=True, advisories=advisories)

    logger.info("Existing %s found; keeping it as-is", env_name)
    doc = ConfigDocument.load(path)
    advisories = []

    for flag in overrides.supplied():
        advisories.append(
            Advisory(
                source="config",
                message=f"{flag} ignored: {env_name} already exists. Edit {path} to change it.",
            )
        )

    warnings: List[ConfigWarning] = []
    if template is None:
        advisories.append(
            Advisory(source="config", message="Environment template unavailable; skipped new-setting check")
        )
    else:
        warnings = template_warnings(template, doc)

    found = _conventional_license(path.parent, settings)
    if found is not None and not doc.is_active(settings.license_key):
        advisories.append(
            Advisory(
                source="config",
                message=f"Found {found} but {settings.license_key} is not set in {env_name}; add {settings.license_key}={found.resolve()} to use it",
            )
        )

    return ReconcileResult(document=doc, warnings=warnings, fresh=False, advisories=advisories)


def write_document(doc: ConfigDocument, path: str | Path) -> None:
    """Write the environment file readable by its owner only."""

    p = Path(path)
    try:
        doc.save(p)
        os.chmod(p, ENV_FILE_MODE)
    except PermissionError as e:
        raise PermissionDenied(f"Cannot write {p}: {e.strerror or e}") from e
