"""Resolve a local cluster name to the name Komodor knows it by.

Order of attempts:
    1. Cached entry in the mapping file (no network call).
    2. One ``GET /api/v2/clusters`` call, then
       a. exact name match, else
       b. match of the local ``default`` namespace UID against ``clusterId``.
    3. No match: ResolutionError listing every Komodor cluster name.

A successful remote match is written back to the mapping file. Failing to
write it is logged and otherwise ignored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from komodor_rca.cluster.local import get_local_cluster_uid
from komodor_rca.errors import LocalClusterError, ResolutionError
from komodor_rca.observability.logging import get_logger
from komodor_rca.observability.metrics import cluster_resolutions_total

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from komodor_rca.api.client import KomodorClient
    from komodor_rca.cluster.mapping import ClusterMappingStore
    from komodor_rca.models.clusters import KomodorCluster

_logger = get_logger("cluster.resolver")


def find_cluster_by_name(name: str, clusters: list[KomodorCluster]) -> KomodorCluster | None:
    for cluster in clusters:
        if cluster.name == name:
            return cluster
    return None


def find_cluster_by_uid(uid: str, clusters: list[KomodorCluster]) -> KomodorCluster | None:
    if not uid:
        return None
    for cluster in clusters:
        if cluster.cluster_id == uid:
            return cluster
    return None


def _no_match_message(local_name: str, clusters: list[KomodorCluster], mapping_path: str) -> str:
    available = ", ".join(c.name for c in clusters) or "(none)"
    return (
        f"no matching Komodor cluster found for '{local_name}'. Available clusters: {available}\n\n"
        f"To fix this, add a manual mapping to {mapping_path}:\n"
        f"mapping:\n"
        f'  "{local_name}": "your-komodor-cluster-name"'
    )


class ClusterResolver:
    """Maps local cluster names to Komodor cluster names.

    Args:
        client:     Komodor API client used for the cluster list.
        store:      Mapping file store.
        uid_lookup: Async callable returning the local cluster UID.
                    Defaults to reading it through the Kubernetes API.
    """

    def __init__(
        self,
        client: KomodorClient,
        store: ClusterMappingStore,
        uid_lookup: Callable[[], Awaitable[str]] | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._uid_lookup = uid_lookup or get_local_cluster_uid

    async def resolve(self, local_name: str) -> str:
        """Return the Komodor cluster name for *local_name*.

        Raises ResolutionError when the cluster list cannot be fetched or
        neither strategy finds a match.
        """
        mapping = self._store.load()
        cached = mapping.get(local_name)
        if cached:
            _logger.info("cluster_mapping_hit", local_cluster=local_name, komodor_cluster=cached)
            cluster_resolutions_total.labels(strategy="cache").inc()
            return cached

        _logger.info("cluster_mapping_miss", local_cluster=local_name)
        clusters = await self._client.list_clusters()

        strategy = "name"
        match = find_cluster_by_name(local_name, clusters)
        if match is None:
            _logger.info("cluster_name_match_failed", local_cluster=local_name)
            strategy = "uid"
            match = await self._match_by_uid(clusters)

        if match is None:
            cluster_resolutions_total.labels(strategy="none").inc()
            _logger.error(
                "cluster_resolution_failed",
                local_cluster=local_name,
                available=[c.name for c in clusters],
            )
            raise ResolutionError(_no_match_message(local_name, clusters, str(self._store.path)))

        _logger.info(
            "cluster_resolved",
            local_cluster=local_name,
            komodor_cluster=match.name,
            strategy=strategy,
        )
        cluster_resolutions_total.labels(strategy=strategy).inc()
        self._remember(mapping, local_name, match.name)
        return match.name

    async def _match_by_uid(self, clusters: list[KomodorCluster]) -> KomodorCluster | None:
        try:
            uid = await self._uid_lookup()
        except LocalClusterError as exc:
            _logger.warning("local_cluster_uid_unavailable", error=str(exc))
            return None
        return find_cluster_by_uid(uid, clusters)

    def _remember(self, mapping: dict[str, str], local_name: str, komodor_name: str) -> None:
        updated = dict(mapping)
        updated[local_name] = komodor_name
        try:
            self._store.save(updated)
        except OSError as exc:
            _logger.warning("cluster_mapping_save_failed", path=str(self._store.path), error=str(exc))
            return
        _logger.info("cluster_mapping_saved", local_cluster=local_name, komodor_cluster=komodor_name)
