"""Komodor cluster list models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class KomodorCluster(BaseModel):
    """One cluster as reported by ``GET /api/v2/clusters``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    api_server_url: str = Field(default="", alias="apiServerUrl")
    cluster_id: str = Field(default="", alias="clusterId")
    name: str = ""
    tags: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class _ClusterList(BaseModel):
    clusters: list[KomodorCluster] = Field(default_factory=list)


class ClustersResponse(BaseModel):
    """Envelope: ``{"data": {"clusters": [...]}}``."""

    data: _ClusterList = Field(default_factory=_ClusterList)

    @property
    def clusters(self) -> list[KomodorCluster]:
        return self.data.clusters
