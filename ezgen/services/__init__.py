"""Pipeline services for EZ-GEN."""

from .environment import BuildEnvironmentChecker
from .guide import GuideWriter
from .keystore import KeystoreManager
from .materializer import TemplateMaterializer
from .progress import ProgressReporter, SessionLogger
from .release import ReleaseBuildDriver
from .sync import SyncEngine
from .web_build import WebBuildService

__all__ = [
    "BuildEnvironmentChecker",
    "GuideWriter",
    "KeystoreManager",
    "TemplateMaterializer",
    "ProgressReporter",
    "SessionLogger",
    "ReleaseBuildDriver",
    "SyncEngine",
    "WebBuildService",
]
