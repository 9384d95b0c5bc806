"""
Workflow Nodes Package

Nodes are loaded from the node_packages/ directory as self-contained packages.
"""

from .loader import NodePackageLoader, NodePackage, initialize_node_loader
from .registry import NodeRegistry

__all__ = [
    "NodePackageLoader",
    "NodePackage",
    "NodeRegistry",
    "initialize_node_loader"
]
