"""Kubernetes YAML manifest manager.

Decodes multi-document YAML bundles and applies them document by document.
Built-in kinds are created with ``kubernetes.utils.create_from_dict`` and
fall back to server-side apply when they already exist. Custom resources
(OLM, VictoriaMetrics) always go through the dynamic client's server-side
apply.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from olm_orchestrator.integrations.kubernetes.exceptions import KubernetesValidationError
from olm_orchestrator.services.kubernetes.base import K8sBaseManager

if TYPE_CHECKING:
    from olm_orchestrator.integrations.kubernetes.client import KubernetesClient

REQUIRED_MANIFEST_FIELDS = ("apiVersion", "kind", "metadata")
FIELD_MANAGER = "olm-orchestrator"

# API groups served by the typed client; anything else is a custom resource
BUILTIN_GROUP_SUFFIX = ".k8s.io"


@dataclass
class ApplyResult:
    """Result of applying a single manifest."""

    resource: str
    action: str
    namespace: str | None


def decode_manifests(data: bytes | str, source: str = "<bytes>") -> list[dict[str, Any]]:
    """Parse a multi-document YAML bundle.

    Empty documents are skipped.

    Args:
        data: Raw YAML.
        source: Label used in error messages.

    Returns:
        Parsed manifest dictionaries in document order.

    Raises:
        KubernetesValidationError: If the YAML cannot be parsed or a document
            is not a Kubernetes object.
    """
    from ruamel.yaml import YAML
    from ruamel.yaml.error import YAMLError

    text = data.decode("utf-8") if isinstance(data, bytes) else data
    yaml = YAML(typ="safe")
    try:
        documents = list(yaml.load_all(text))
    except YAMLError as e:
        raise KubernetesValidationError(
            message=f"Failed to parse YAML from {source}: {e}", status_code=None
        ) from e

    manifests: list[dict[str, Any]] = []
    for index, doc in enumerate(documents):
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise KubernetesValidationError(
                message=f"Document {index} in {source} is a {type(doc).__name__}, not a mapping",
                status_code=None,
            )
        missing = [f for f in REQUIRED_MANIFEST_FIELDS if f not in doc]
        if missing:
            raise KubernetesValidationError(
                message=f"Document {index} in {source} is missing {', '.join(missing)}",
                status_code=None,
            )
        manifests.append(doc)
    return manifests


def resource_identifier(manifest: dict[str, Any]) -> str:
    """Return a ``Kind/name`` identifier for a manifest."""
    kind = manifest.get("kind", "Unknown")
    name = manifest.get("metadata", {}).get("name", "unnamed")
    return f"{kind}/{name}"


def is_custom_resource(manifest: dict[str, Any]) -> bool:
    """Whether the manifest's API group is not served by the typed client."""
    api_version = str(manifest.get("apiVersion", ""))
    if "/" not in api_version:
        return False
    group = api_version.split("/", 1)[0]
    return "." in group and not group.endswith(BUILTIN_GROUP_SUFFIX)


class ManifestManager(K8sBaseManager):
    """Applies decoded manifests to the cluster in order."""

    _entity_name: str = "manifest"

    def __init__(self, client: KubernetesClient) -> None:
        super().__init__(client)
        self._dynamic: Any = None

    def apply_bytes(self, data: bytes, source: str = "<bytes>") -> list[ApplyResult]:
        """Decode and apply a YAML bundle.

        Raises:
            KubernetesError: On the first document that fails to parse or apply.
        """
        return self.apply_manifests(decode_manifests(data, source=source))

    def apply_manifests(self, manifests: list[dict[str, Any]]) -> list[ApplyResult]:
        """Apply manifests in order, stopping at the first failure.

        Raises:
            KubernetesError: If any document fails to apply.
        """
        results: list[ApplyResult] = []
        for manifest in manifests:
            if is_custom_resource(manifest):
                results.append(self._server_side_apply(manifest))
            else:
                results.append(self._create_or_apply(manifest))
        self._log.info("applied_manifests", total=len(results))
        return results

    def _create_or_apply(self, manifest: dict[str, Any]) -> ApplyResult:
        """Create a built-in object, server-side applying it if it exists."""
        from kubernetes import utils

        resource_id = resource_identifier(manifest)
        namespace = manifest.get("metadata", {}).get("namespace")
        try:
            utils.create_from_dict(self._client.api_client, manifest, verbose=False)
        except utils.FailToCreateError as e:
            if all(ex.status == 409 for ex in e.api_exceptions):
                return self._server_side_apply(manifest)
            first = e.api_exceptions[0]
            self._log.error("manifest_apply_failed", resource=resource_id, error=str(first.reason))
            self._handle_api_error(first, manifest.get("kind"), _name(manifest), namespace)
        except Exception as e:
            self._log.error("manifest_apply_failed", resource=resource_id, error=str(e))
            self._handle_api_error(e, manifest.get("kind"), _name(manifest), namespace)

        self._log.debug("manifest_applied", resource=resource_id, action="created")
        return ApplyResult(resource=resource_id, action="created", namespace=namespace)

    def _server_side_apply(self, manifest: dict[str, Any]) -> ApplyResult:
        """Server-side apply through the dynamic client."""
        resource_id = resource_identifier(manifest)
        namespace = manifest.get("metadata", {}).get("namespace")
        try:
            resource_api = self._get_dynamic_client().resources.get(
                api_version=manifest.get("apiVersion", ""),
                kind=manifest.get("kind", ""),
            )
            kwargs: dict[str, Any] = {
                "body": manifest,
                "field_manager": FIELD_MANAGER,
                "force_conflicts": True,
            }
            if namespace:
                kwargs["namespace"] = namespace
            resource_api.server_side_apply(**kwargs)
        except Exception as e:
            self._log.error("manifest_ssa_failed", resource=resource_id, error=str(e))
            self._handle_api_error(e, manifest.get("kind"), _name(manifest), namespace)

        self._log.debug("manifest_applied", resource=resource_id, action="configured")
        return ApplyResult(resource=resource_id, action="configured", namespace=namespace)

    def _get_dynamic_client(self) -> Any:
        """Create (once) a ``kubernetes.dynamic.DynamicClient``."""
        if self._dynamic is None:
            from kubernetes.dynamic import DynamicClient

            self._dynamic = DynamicClient(self._client.api_client)
        return self._dynamic


def _name(manifest: dict[str, Any]) -> str | None:
    return manifest.get("metadata", {}).get("name")
