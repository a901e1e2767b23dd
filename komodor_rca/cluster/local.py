"""Identity of the local Kubernetes cluster.

Komodor reports each cluster's ``clusterId`` as the UID of its ``default``
namespace, so reading that UID through the Kubernetes API is enough to
match a local cluster whose name differs from the Komodor one.
"""

from __future__ import annotations

from komodor_rca.errors import LocalClusterError
from komodor_rca.observability.logging import get_logger

_logger = get_logger("cluster.local")

_IDENTITY_NAMESPACE = "default"


async def get_local_cluster_uid(context: str | None = None) -> str:
    """Return the UID of the ``default`` namespace of the current cluster.

    Uses in-cluster config when available, else the kubeconfig (optionally
    a specific *context*). Raises LocalClusterError on any failure.
    """
    # Imported lazily: kubernetes-asyncio is slow to import and only needed
    # when the name-based match fails.
    from kubernetes_asyncio import client as k8s_client
    from kubernetes_asyncio import config as k8s_config

    configuration = k8s_client.Configuration()
    try:
        try:
            k8s_config.load_incluster_config(client_configuration=configuration)  # type: ignore[no-untyped-call]
            _logger.debug("k8s client configured from in-cluster service account")
        except k8s_config.ConfigException:
            await k8s_config.load_kube_config(client_configuration=configuration, context=context)
            _logger.debug("k8s client configured from kubeconfig", context=context)

        async with k8s_client.ApiClient(configuration=configuration) as api:
            namespace = await k8s_client.CoreV1Api(api).read_namespace(_IDENTITY_NAMESPACE)
    except Exception as exc:
        raise LocalClusterError(f"failed to get cluster UID: {exc}") from exc

    metadata = getattr(namespace, "metadata", None)
    uid = getattr(metadata, "uid", None)
    if not isinstance(uid, str) or not uid:
        raise LocalClusterError("cluster UID not found in namespace metadata")
    return uid
