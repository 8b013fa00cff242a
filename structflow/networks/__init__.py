"""Random network generators."""

from structflow.networks.graph import Network, build_chain, build_tree

__all__ = ["Network", "build_chain", "build_tree"]
