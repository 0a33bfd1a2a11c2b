"""HTTP access to the game admin backend."""

from scenariokit.api.client import AdminApiClient, UploadFile, error_detail

__all__ = ["AdminApiClient", "UploadFile", "error_detail"]
