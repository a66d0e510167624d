"""
Framework/Rule Definition Store

Abstract read-only interface to the framework catalog and tenant
selections, plus an in-memory implementation loadable from YAML or JSON
catalog files.

Catalog file layout:
    frameworks:
      - frameworkId: aws-wa
        version: "2024.1"
        rules: [...]
    selections:
      - tenantId: tenant-1
        frameworkId: aws-wa
        weight: 2
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from ...models.framework_models import FrameworkDefinition, TenantFrameworkSelection
from ..engine.exceptions import RuleDefinitionError

logger = logging.getLogger(__name__)


def _version_key(version: str) -> Tuple:
    """Sort key ordering dotted versions numerically where possible."""
    parts = []
    for part in version.replace("-", ".").split("."):
        parts.append((0, int(part), "") if part.isdigit() else (1, 0, part))
    return tuple(parts)


class DefinitionStore(ABC):
    """
    Read-only access to framework definitions and tenant selections.

    Implementations may perform I/O; every method is a coroutine.
    """

    @abstractmethod
    async def get_framework(self, framework_id: str, version: Optional[str] = None) -> Optional[FrameworkDefinition]:
        """
        Get a framework definition.

        Args:
            framework_id: Framework identifier
            version: Exact version, or None for the latest

        Returns:
            FrameworkDefinition, or None if unknown
        """
        pass

    @abstractmethod
    async def get_latest_version(self, framework_id: str) -> Optional[str]:
        """Get the latest version of a framework, or None if unknown."""
        pass

    @abstractmethod
    async def get_selection(self, tenant_id: str, framework_id: str) -> Optional[TenantFrameworkSelection]:
        """Get a tenant's selection of a framework, or None if not selected."""
        pass

    @abstractmethod
    async def list_frameworks(self) -> List[FrameworkDefinition]:
        """List the latest version of every known framework."""
        pass


class InMemoryDefinitionStore(DefinitionStore):
    """
    Dictionary-backed definition store.

    Used by tests, the CLI and embedders that already hold the catalog in
    memory.
    """

    def __init__(self):
        self._frameworks: Dict[str, Dict[str, FrameworkDefinition]] = {}
        self._selections: Dict[Tuple[str, str], TenantFrameworkSelection] = {}

    def add_framework(self, framework: FrameworkDefinition) -> None:
        self._frameworks.setdefault(framework.framework_id, {})[framework.version] = framework
        logger.debug(f"Registered framework {framework.framework_id} v{framework.version}")

    def add_selection(self, selection: TenantFrameworkSelection) -> None:
        self._selections[(selection.tenant_id, selection.framework_id)] = selection

    def remove_selection(self, tenant_id: str, framework_id: str) -> None:
        self._selections.pop((tenant_id, framework_id), None)

    def tenant_selections(self, tenant_id: str) -> List[TenantFrameworkSelection]:
        """All selections of a tenant, in insertion order."""
        return [s for (tenant, _), s in self._selections.items() if tenant == tenant_id]

    async def get_framework(self, framework_id: str, version: Optional[str] = None) -> Optional[FrameworkDefinition]:
        versions = self._frameworks.get(framework_id)
        if not versions:
            return None
        if version is None:
            version = await self.get_latest_version(framework_id)
        return versions.get(version)

    async def get_latest_version(self, framework_id: str) -> Optional[str]:
        versions = self._frameworks.get(framework_id)
        if not versions:
            return None
        return max(versions, key=_version_key)

    async def get_selection(self, tenant_id: str, framework_id: str) -> Optional[TenantFrameworkSelection]:
        return self._selections.get((tenant_id, framework_id))

    async def list_frameworks(self) -> List[FrameworkDefinition]:
        latest = []
        for framework_id in sorted(self._frameworks):
            version = await self.get_latest_version(framework_id)
            latest.append(self._frameworks[framework_id][version])
        return latest

    @classmethod
    def from_dict(cls, catalog: Dict[str, Any], source: str = "<dict>") -> "InMemoryDefinitionStore":
        """
        Build a store from a parsed catalog document.

        Raises:
            RuleDefinitionError: If the catalog layout or any definition is invalid
        """
        if not isinstance(catalog, dict):
            raise RuleDefinitionError("Catalog must be a mapping with 'frameworks' and 'selections'", source)

        store = cls()
        for index, entry in enumerate(catalog.get("frameworks") or []):
            try:
                store.add_framework(FrameworkDefinition.model_validate(entry))
            except ValidationError as e:
                raise RuleDefinitionError(
                    f"Invalid framework definition at frameworks[{index}]",
                    source,
                    context={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
                    cause=e,
                ) from e

        for index, entry in enumerate(catalog.get("selections") or []):
            try:
                store.add_selection(TenantFrameworkSelection.model_validate(entry))
            except ValidationError as e:
                raise RuleDefinitionError(
                    f"Invalid tenant selection at selections[{index}]",
                    source,
                    context={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
                    cause=e,
                ) from e

        logger.info(
            f"Loaded catalog {source}: {len(store._frameworks)} frameworks, {len(store._selections)} selections"
        )
        return store

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "InMemoryDefinitionStore":
        """
        Load a YAML (.yml/.yaml) or JSON catalog file.

        Raises:
            RuleDefinitionError: If the file cannot be parsed or is invalid
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.suffix.lower() == ".json":
                    catalog = json.load(f)
                else:
                    # safe_load: catalogs are data, never code
                    catalog = yaml.safe_load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise RuleDefinitionError(f"Cannot read catalog: {e}", str(path), cause=e) from e

        return cls.from_dict(catalog, source=str(path))
