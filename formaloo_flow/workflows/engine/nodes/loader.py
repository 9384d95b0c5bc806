"""
Node Package Loader

Loads workflow nodes from the node_packages directory. Each package is a
directory holding a manifest.json and a backend/execute.py module:

    node_packages/<category>/<package>/manifest.json
    node_packages/<category>/<package>/backend/execute.py

The backend module must define execute(context) and may define validate(config).
Functions named by the manifest (loadOptionsMethod / searchListMethod on
inputs, webhookMethods for triggers) are bound at load time so a package
that names a missing function fails to load instead of failing at runtime.
"""

import json
import importlib.util
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field

from formaloo_flow.formaloo.errors import ValidationError
from formaloo_flow.workflows.engine.context import NodeContext
from formaloo_flow.workflows.engine.definitions import WorkflowItem
from formaloo_flow.workflows.engine.nodes.schema import NodeManifest, WebhookMethods

logger = logging.getLogger(__name__)


@dataclass
class NodePackage:
    """Represents a loaded node package"""
    id: str
    name: str
    version: str
    manifest: NodeManifest
    execute_fn: Callable
    validate_fn: Optional[Callable] = None
    load_options: Dict[str, Callable] = field(default_factory=dict)
    webhook_methods: Dict[str, Callable] = field(default_factory=dict)
    webhook_fn: Optional[Callable] = None
    package_dir: Optional[Path] = None


class NodePackageLoader:
    """
    Loads and manages packaged workflow nodes from the filesystem.

    Usage:
        loader = NodePackageLoader(Path("node_packages"))
        loader.discover_nodes()
        items = await loader.execute_node("formaloo.submit", context)
    """

    def __init__(self, packages_dir: Path):
        self.packages_dir = Path(packages_dir)
        self.loaded_nodes: Dict[str, NodePackage] = {}

    def discover_nodes(self) -> List[NodePackage]:
        """
        Scan the packages directory and load all valid node packages.

        Returns:
            List of successfully loaded NodePackage objects
        """
        nodes = []

        if not self.packages_dir.exists():
            logger.warning(f"Node packages directory {self.packages_dir} does not exist")
            return nodes

        for category_dir in sorted(self.packages_dir.iterdir()):
            if not category_dir.is_dir() or category_dir.name.startswith(("_", ".")):
                continue

            for package_dir in sorted(category_dir.iterdir()):
                if not package_dir.is_dir() or package_dir.name.startswith(("_", ".")):
                    continue

                if not (package_dir / "manifest.json").exists():
                    logger.warning(f"Skipping {package_dir.name}: no manifest.json")
                    continue

                try:
                    node_package = self._load_node_package(package_dir)
                    nodes.append(node_package)
                    self.loaded_nodes[node_package.id] = node_package
                    logger.info(f"Loaded node: {node_package.name} v{node_package.version} ({node_package.id})")
                except Exception as e:
                    logger.error(f"Failed to load node {package_dir.name}: {e}", exc_info=True)

        logger.info(f"Loaded {len(nodes)} workflow nodes")
        return nodes

    def _load_node_package(self, package_dir: Path) -> NodePackage:
        """
        Load a single node package from its directory.

        Raises:
            ValueError: If the manifest is invalid or a named function is missing
        """
        with open(package_dir / "manifest.json", "r", encoding="utf-8") as f:
            manifest = NodeManifest.model_validate(json.load(f))

        execute_module_path = package_dir / "backend" / "execute.py"
        if not execute_module_path.exists():
            raise ValueError(f"Missing backend/execute.py in {package_dir.name}")

        spec = importlib.util.spec_from_file_location(
            f"node_packages.{manifest.id}.execute",
            execute_module_path
        )
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        if not hasattr(module, "execute"):
            raise ValueError(f"Node package {package_dir.name} missing execute() function")

        load_options = {
            name: self._require(module, name, package_dir)
            for name in manifest.option_methods()
        }

        webhook_methods: Dict[str, Callable] = {}
        webhook_fn = None
        if manifest.webhook:
            methods = manifest.webhookMethods or WebhookMethods()
            webhook_methods = {
                hook: self._require(module, fn_name, package_dir)
                for hook, fn_name in methods.model_dump().items()
            }
            webhook_fn = self._require(module, "webhook", package_dir)

        return NodePackage(
            id=manifest.id,
            name=manifest.name,
            version=manifest.version,
            manifest=manifest,
            execute_fn=module.execute,
            validate_fn=getattr(module, "validate", None),
            load_options=load_options,
            webhook_methods=webhook_methods,
            webhook_fn=webhook_fn,
            package_dir=package_dir
        )

    @staticmethod
    def _require(module: Any, name: str, package_dir: Path) -> Callable:
        fn = getattr(module, name, None)
        if not callable(fn):
            raise ValueError(f"Node package {package_dir.name} missing {name}() function")
        return fn

    def _get(self, node_id: str) -> NodePackage:
        node_package = self.loaded_nodes.get(node_id)
        if not node_package:
            raise ValueError(f"Node '{node_id}' not found. Available: {list(self.loaded_nodes.keys())}")
        return node_package

    async def execute_node(self, node_id: str, context: NodeContext) -> List[WorkflowItem]:
        """
        Validate the node's configuration, then run it.

        Errors raised by the node propagate unchanged after being logged.

        Raises:
            ValueError: If the node is not loaded
            ValidationError: If validate() rejects the configuration
        """
        node_package = self._get(node_id)

        if node_package.validate_fn:
            validation_result = await node_package.validate_fn(context.resolve_config())
            if not validation_result.get("valid", True):
                errors = validation_result.get("errors", ["Validation failed"])
                raise ValidationError(f"Configuration validation failed: {', '.join(errors)}")

        try:
            return await node_package.execute_fn(context)
        except Exception as e:
            logger.error(f"Node {node_id} execution failed: {e}")
            raise

    async def load_options(self, node_id: str, method: str, context: NodeContext, **kwargs) -> Any:
        """Run one of the node's option loaders (dropdown / searchable list)."""
        node_package = self._get(node_id)
        fn = node_package.load_options.get(method)
        if fn is None:
            raise ValueError(f"Node '{node_id}' has no options method '{method}'")
        return await fn(context, **kwargs)

    async def run_webhook_method(self, node_id: str, method: str, context: NodeContext) -> bool:
        """Run checkExists, create or delete for a trigger node."""
        node_package = self._get(node_id)
        fn = node_package.webhook_methods.get(method)
        if fn is None:
            raise ValueError(f"Node '{node_id}' has no webhook method '{method}'")
        return await fn(context)

    async def receive_webhook(self, node_id: str, context: NodeContext) -> List[WorkflowItem]:
        node_package = self._get(node_id)
        if node_package.webhook_fn is None:
            raise ValueError(f"Node '{node_id}' does not receive webhooks")
        return await node_package.webhook_fn(context)

    def get_node(self, node_id: str) -> Optional[NodePackage]:
        """Get a loaded node package by ID"""
        return self.loaded_nodes.get(node_id)

    def list_nodes(self) -> List[Dict[str, Any]]:
        """
        Get a list of all loaded node packages with their metadata.
        """
        return [
            {
                "id": node.id,
                "name": node.name,
                "version": node.version,
                "category": node.manifest.category.value,
                "description": node.manifest.description,
                "credentials": node.manifest.credentials or [],
                "webhook": node.manifest.webhook,
                "inputs": [i.model_dump(exclude_none=True) for i in node.manifest.inputs],
                "outputs": [o.model_dump(exclude_none=True) for o in node.manifest.outputs],
                "tags": node.manifest.tags
            }
            for node in self.loaded_nodes.values()
        ]


def initialize_node_loader(packages_dir: Path) -> NodePackageLoader:
    """Create a loader and discover every package under packages_dir."""
    loader = NodePackageLoader(packages_dir)
    loader.discover_nodes()
    return loader
