"""
Catalog loader for declarative agent definitions.

Loads agents from ``<base_path>/agents/<name>.yaml``. Callables are given as
entrypoints, either ``"package.module:attr"`` or ``"relative/file.py:attr"``
(resolved against the catalog root). Agent steps reference other catalog
agents by name.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, cast

import yaml

from agentflow.agent.factory import create_agent
from agentflow.agent.spec import AgentDefinition
from agentflow.errors import InvalidConfigError
from agentflow.llm.factory import create_provider
from agentflow.settings import AgentFlowSettings, get_settings

logger = logging.getLogger(__name__)

_CALLABLE_STEP_TYPES = {"function", "transform"}


class AgentCatalog:
    """Loads and caches agent definitions described in YAML."""

    def __init__(
        self,
        base_path: Optional[Path] = None,
        *,
        settings: Optional[AgentFlowSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.base_path = Path(base_path or self.settings.CATALOG_DIR).resolve()
        self._agent_cache: Dict[str, AgentDefinition] = {}
        self._module_cache: Dict[Path, Any] = {}

    @property
    def agents_dir(self) -> Path:
        return self.base_path / "agents"

    def list_agents(self) -> List[str]:
        if not self.agents_dir.is_dir():
            return []
        names = {path.stem for path in self.agents_dir.glob("*.yaml")}
        names.update(path.stem for path in self.agents_dir.glob("*.yml"))
        return sorted(names)

    def load(self, name: str) -> AgentDefinition:
        """
        Load the agent ``name`` and every agent it delegates to.

        Raises:
            FileNotFoundError: If no YAML file exists for the agent
            InvalidConfigError: If the descriptor is malformed or cyclic
        """
        return self._load(name, ancestry=())

    def _descriptor_path(self, name: str) -> Path:
        for suffix in (".yaml", ".yml"):
            candidate = self.agents_dir / f"{name}{suffix}"
            if candidate.exists():
                return candidate
        raise FileNotFoundError(f"Agent '{name}' not found in {self.agents_dir}")

    def _load(self, name: str, ancestry: tuple[str, ...]) -> AgentDefinition:
        if name in ancestry:
            cycle = " -> ".join(ancestry + (name,))
            raise InvalidConfigError(f"circular agent reference: {cycle}", field="agent")

        if name in self._agent_cache:
            return self._agent_cache[name]

        path = self._descriptor_path(name)
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise InvalidConfigError(f"agent descriptor at {path} must be a mapping")

        data = dict(raw)
        kind = data.pop("kind", data.pop("type", None))
        if kind is None:
            raise InvalidConfigError(f"agent descriptor at {path} has no kind", field="kind")
        data.setdefault("name", name)

        lineage = ancestry + (name,)
        for key in ("steps", "tasks"):
            if key in data:
                data[key] = self._build_steps(data[key], key, lineage)
        if isinstance(data.get("condition"), str):
            data["condition"] = self.resolve_entrypoint(data["condition"])
        if isinstance(data.get("output_schema"), str):
            data["output_schema"] = self.resolve_entrypoint(data["output_schema"])
        if isinstance(data.get("provider"), str):
            data["provider"] = create_provider(data["provider"], settings=self.settings)

        definition = create_agent(kind, data, settings=self.settings)
        self._agent_cache[name] = definition
        logger.debug("Loaded agent %s (%s) from %s", name, kind, path)
        return definition

    def _build_steps(self, items: Any, key: str, lineage: tuple[str, ...]) -> List[Any]:
        if not isinstance(items, Sequence) or isinstance(items, (str, bytes)):
            raise InvalidConfigError("must be a list of steps", field=key)
        steps: List[Any] = []
        for index, item in enumerate(items):
            if not isinstance(item, Mapping):
                raise InvalidConfigError("step must be a mapping", field=f"{key}[{index}]")
            step = dict(item)
            step_type = step.get("type")
            if step_type in _CALLABLE_STEP_TYPES:
                reference = step.get("function", step.get(step_type))
                if not isinstance(reference, str):
                    raise InvalidConfigError(
                        "must be an entrypoint string", field=f"{key}[{index}].function"
                    )
                step.pop(step_type, None)
                step["function"] = self.resolve_entrypoint(reference)
            elif step_type == "agent":
                reference = step.get("agent")
                if not isinstance(reference, str):
                    raise InvalidConfigError(
                        "must name a catalog agent", field=f"{key}[{index}].agent"
                    )
                step["agent"] = self._load(reference, lineage)
            steps.append(step)
        return steps

    def resolve_entrypoint(self, entrypoint: str) -> Callable[..., Any]:
        """
        Resolve an entrypoint string to a callable.

        Args:
            entrypoint: ``"package.module:attr"`` or ``"path/to/file.py:attr"``

        Raises:
            InvalidConfigError: If the format is invalid or the target is missing
        """
        if ":" not in entrypoint:
            raise InvalidConfigError(
                f"invalid entrypoint {entrypoint!r} (expected 'module:callable')"
            )
        module_ref, attr_name = entrypoint.rsplit(":", 1)

        if module_ref.endswith(".py"):
            module = self._load_file_module(self.base_path / module_ref)
        else:
            try:
                module = importlib.import_module(module_ref)
            except ImportError as exc:
                raise InvalidConfigError(f"cannot import {module_ref!r}: {exc}") from exc

        attr = getattr(module, attr_name, None)
        if attr is None:
            raise InvalidConfigError(f"{attr_name!r} not found in {module_ref!r}")
        if not callable(attr):
            raise InvalidConfigError(f"entrypoint {entrypoint!r} is not callable")
        return cast(Callable[..., Any], attr)

    def _load_file_module(self, module_path: Path) -> Any:
        module_path = module_path.resolve()
        if module_path in self._module_cache:
            return self._module_cache[module_path]
        if not module_path.exists():
            raise InvalidConfigError(f"entrypoint module not found: {module_path}")

        spec = importlib.util.spec_from_file_location(
            f"_agentflow_catalog_{abs(hash(module_path))}", module_path
        )
        if spec is None or spec.loader is None:
            raise InvalidConfigError(f"cannot create module spec for {module_path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[spec.name] = module
        spec.loader.exec_module(module)
        self._module_cache[module_path] = module
        return module


__all__ = ["AgentCatalog"]
