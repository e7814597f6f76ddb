from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

DEFAULT_BASE_URL = "https://install.rocketgraph.ai"
DEFAULT_PROJECT_NAME = "rocketgraph"

SECTIONS = ("download", "compose", "env", "ports", "images", "artifacts", "platform", "services", "timeouts")


@dataclass(frozen=True)
class InstallerSettings:
    """Compiled-in installer defaults, optionally overridden from YAML.

    Layout of the YAML mapping (every section optional):

        download: {base_url, compose_file, template_file}
        compose: {project_name}
        env: {file, http_port_key, https_port_key, ...}
        ports: {http, https}
        images: {backend}
        artifacts: {source_dir, dest_dir}
        platform: {volume, owner, containers}
        services: {core, dependent}
        timeouts: {probe, pull, up, default, grace, fetch}

    A key that is absent or null takes the default; any other value,
    including 0 or an empty list, is used as given.
    """

    raw: Dict[str, Any] = field(default_factory=dict)

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.raw.get(name)
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ValueError(f"installer settings section '{name}' must be a mapping/object")
        return section

    def _get(self, section: str, key: str, default: Any) -> Any:
        value = self._section(section).get(key)
        return default if value is None else value

    # download
    @property
    def base_url(self) -> str:
        return str(self._get("download", "base_url", DEFAULT_BASE_URL)).rstrip("/")

    @property
    def compose_file(self) -> str:
        return str(self._get("download", "compose_file", "docker-compose.yml"))

    @property
    def template_file(self) -> str:
        return str(self._get("download", "template_file", "env.template"))

    # compose
    @property
    def project_name(self) -> str:
        # Volumes are created as <project>_<volume>; pinned so the install dir name does not matter.
        return str(self._get("compose", "project_name", DEFAULT_PROJECT_NAME))

    # env keys
    @property
    def env_file(self) -> str:
        return str(self._get("env", "file", ".env"))

    @property
    def http_port_key(self) -> str:
        return str(self._get("env", "http_port_key", "MC_PORT"))

    @property
    def https_port_key(self) -> str:
        return str(self._get("env", "https_port_key", "MC_SSL_PORT"))

    @property
    def public_cert_key(self) -> str:
        return str(self._get("env", "public_cert_key", "MC_SSL_PUBLIC_CERT"))

    @property
    def private_key_key(self) -> str:
        return str(self._get("env", "private_key_key", "MC_SSL_PRIVATE_KEY"))

    @property
    def license_key(self) -> str:
        return str(self._get("env", "license_key", "XGT_LICENSE_FILE"))

    @property
    def license_file_name(self) -> str:
        return str(self._get("env", "license_file_name", "xgtd.lic"))

    @property
    def auth_restriction_key(self) -> str:
        return str(self._get("env", "auth_restriction_key", "MC_SINGLE_USER"))

    @property
    def db_image_key(self) -> str:
        return str(self._get("env", "db_image_key", "MC_MONGODB_IMAGE"))

    # ports
    @property
    def default_http_port(self) -> int:
        return int(self._get("ports", "http", 80))

    @property
    def default_https_port(self) -> int:
        return int(self._get("ports", "https", 443))

    # images / artifacts
    @property
    def backend_image(self) -> str:
        return str(self._get("images", "backend", "rocketgraph/xgt"))

    @property
    def artifact_source_dir(self) -> str:
        return str(self._get("artifacts", "source_dir", "/opt/xgtd/examples"))

    @property
    def artifact_dest_dir(self) -> str:
        return str(self._get("artifacts", "dest_dir", "examples"))

    # platform prepare
    @property
    def prepare_volume(self) -> str:
        return str(self._get("platform", "volume", f"{self.project_name}_mongodb-data"))

    @property
    def prepare_owner(self) -> str:
        return str(self._get("platform", "owner", "999:999"))

    @property
    def prepare_containers(self) -> List[str]:
        return list(self._get("platform", "containers", ["rocketgraph-mongodb"]))

    # services
    @property
    def core_services(self) -> List[str]:
        return list(self._get("services", "core", []))

    @property
    def dependent_services(self) -> List[str]:
        return list(self._get("services", "dependent", []))

    # timeouts (seconds)
    @property
    def probe_timeout(self) -> float:
        return float(self._get("timeouts", "probe", 15))

    @property
    def pull_timeout(self) -> float:
        return float(self._get("timeouts", "pull", 1800))

    @property
    def up_timeout(self) -> float:
        return float(self._get("timeouts", "up", 600))

    @property
    def default_timeout(self) -> float:
        return float(self._get("timeouts", "default", 120))

    @property
    def grace_period(self) -> float:
        return float(self._get("timeouts", "grace", 5))

    @property
    def fetch_timeout(self) -> float:
        return float(self._get("timeouts", "fetch", 60))


def load_settings(path: Optional[str]) -> InstallerSettings:
    if not path:
        return InstallerSettings()

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("installer settings must be YAML")

    try:
        import yaml  # type: ignore
    except Exception as e:
        raise RuntimeError("PyYAML is required to read installer settings") from e

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError("installer settings must contain a mapping/object")

    settings = InstallerSettings(raw=raw)
    for name in SECTIONS:
        settings._section(name)
    return settings
