"""komodor-rca - trigger and follow Komodor root cause analysis sessions."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("komodor-rca")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
