"""
Node Registry

Class-level facade over the node package loader, used by the HTTP app and
the CLI to reach the Formaloo nodes without passing a loader around.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from formaloo_flow.config import settings
from formaloo_flow.workflows.engine.context import NodeContext
from formaloo_flow.workflows.engine.definitions import WorkflowItem
from formaloo_flow.workflows.engine.nodes.loader import NodePackage, NodePackageLoader, initialize_node_loader

logger = logging.getLogger(__name__)


def default_packages_dir() -> Path:
    if settings.NODE_PACKAGES_DIR:
        return Path(settings.NODE_PACKAGES_DIR)
    # formaloo_flow/workflows/engine/nodes/registry.py -> repository root
    return Path(__file__).resolve().parents[4] / "node_packages"


class NodeRegistry:
    """
    Central registry for all workflow nodes.
    """

    _loader: Optional[NodePackageLoader] = None
    _initialized: bool = False

    @classmethod
    def initialize(cls, packages_dir: Optional[Path] = None):
        """
        Discover all node packages.

        Args:
            packages_dir: Path to node_packages directory (default: settings or repository root)
        """
        if cls._initialized:
            logger.warning("NodeRegistry already initialized")
            return

        packages_dir = packages_dir or default_packages_dir()
        logger.info(f"Initializing NodeRegistry from: {packages_dir}")
        cls._loader = initialize_node_loader(packages_dir)
        cls._initialized = True
        logger.info(f"NodeRegistry initialized with {len(cls._loader.loaded_nodes)} nodes")

    @classmethod
    def reset(cls):
        cls._loader = None
        cls._initialized = False

    @classmethod
    def get_node(cls, node_type: str) -> Optional[NodePackage]:
        cls._ensure_initialized()
        return cls._loader.get_node(node_type)

    @classmethod
    def list_nodes(cls) -> Dict[str, Dict[str, Any]]:
        """
        Returns:
            Dict mapping node ID to node metadata
        """
        cls._ensure_initialized()
        return {node["id"]: node for node in cls._loader.list_nodes()}

    @classmethod
    async def execute_node(cls, node_id: str, context: NodeContext) -> List[WorkflowItem]:
        cls._ensure_initialized()
        return await cls._loader.execute_node(node_id, context)

    @classmethod
    async def load_options(cls, node_id: str, method: str, context: NodeContext, **kwargs) -> Any:
        cls._ensure_initialized()
        return await cls._loader.load_options(node_id, method, context, **kwargs)

    @classmethod
    async def run_webhook_method(cls, node_id: str, method: str, context: NodeContext) -> bool:
        cls._ensure_initialized()
        return await cls._loader.run_webhook_method(node_id, method, context)

    @classmethod
    async def receive_webhook(cls, node_id: str, context: NodeContext) -> List[WorkflowItem]:
        cls._ensure_initialized()
        return await cls._loader.receive_webhook(node_id, context)

    @classmethod
    def _ensure_initialized(cls):
        if not cls._initialized:
            cls.initialize()
