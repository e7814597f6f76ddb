from .step_10_resolve_runtime import ResolveRuntimeStep
from .step_15_prepare_install_dir import PrepareInstallDirStep
from .step_20_fetch_config import FetchConfigStep
from .step_30_check_ports import CheckPortsStep
from .step_35_write_config import WriteConfigStep
from .step_40_pull_images import PullImagesStep
from .step_50_prepare_platform import PreparePlatformStep
from .step_60_start_services import StartServicesStep
from .step_70_session_linger import SessionLingerStep
from .step_80_extract_artifacts import ExtractArtifactsStep
from .step_90_summary import SummaryStep

__all__ = [
    "ResolveRuntimeStep",
    "PrepareInstallDirStep",
    "FetchConfigStep",
    "CheckPortsStep",
    "WriteConfigStep",
    "PullImagesStep",
    "PreparePlatformStep",
    "StartServicesStep",
    "SessionLingerStep",
    "ExtractArtifactsStep",
    "SummaryStep",
]
