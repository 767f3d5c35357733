"""Parsers turning API-shaped dictionaries into snapshot models."""

from kubemend.controllers.cluster.parsers.node_parser import NodeParser
from kubemend.controllers.cluster.parsers.pdb_parser import PDBParser
from kubemend.controllers.cluster.parsers.pod_parser import PodParser

__all__ = ["NodeParser", "PDBParser", "PodParser"]
