"""Id-keyed arena over a system's nodes.

Parent links are plain ids resolved by explicit ancestor walks. A snapshot
is never mutated: ``replace`` and ``with_offset_anomaly`` hand back a new
snapshot sharing every untouched node.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace as dc_replace
from typing import Iterable, Iterator

import numpy as np

from errors import InputError, UnknownNodeError
from mechanics.kepler import TWO_PI, mean_motion, propagate
from system.bodies import Node

logger = logging.getLogger("orrery.system")


class SystemSnapshot:
    """Read-only view of a system graph."""

    def __init__(self, nodes: Iterable[Node]) -> None:
        self._nodes: dict[str, Node] = {}
        for node in nodes:
            if node.id in self._nodes:
                raise InputError(f"Duplicate node id '{node.id}'")
            self._nodes[node.id] = node

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    # ------------------------------------------------------------------ #
    #  Lookups
    # ------------------------------------------------------------------ #
    def get(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def find(self, node_id: str | None) -> Node | None:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def children(self, node_id: str) -> list[Node]:
        return [n for n in self._nodes.values() if n.parent_id == node_id]

    def roots(self) -> list[Node]:
        return [n for n in self._nodes.values() if n.parent_id is None]

    def of_kind(self, *kinds: str) -> list[Node]:
        return [n for n in self._nodes.values() if n.kind in kinds]

    def chain(self, node_id: str) -> list[Node]:
        """Return ``[node, parent, grandparent, ..., root]``.

        A dangling parent id or a parent cycle is rejected rather than
        walked forever.
        """
        node = self.get(node_id)
        chain = [node]
        seen = {node.id}
        while node.parent_id is not None:
            if node.parent_id not in self._nodes:
                raise UnknownNodeError(node.parent_id, context=f"parent chain of '{node_id}'")
            node = self._nodes[node.parent_id]
            if node.id in seen:
                raise InputError(f"Parent cycle detected at '{node.id}' while resolving '{node_id}'")
            seen.add(node.id)
            chain.append(node)
        return chain

    def ancestors(self, node_id: str) -> list[Node]:
        return self.chain(node_id)[1:]

    def common_ancestor(self, a_id: str, b_id: str) -> Node | None:
        """Nearest node that is an ancestor (or self) of both ``a`` and ``b``."""
        b_ids = {n.id for n in self.chain(b_id)}
        for node in self.chain(a_id):
            if node.id in b_ids:
                return node
        return None

    def gravitational_host(self, node_id: str) -> Node | None:
        """Nearest ancestor-or-self carrying mass."""
        for node in self.chain(node_id):
            if node.mass_kg > 0.0:
                return node
        return None

    def host_star(self, node_id: str) -> Node | None:
        """Nearest star along the chain, else the first star of the system."""
        for node in self.chain(node_id):
            if node.kind == "star":
                return node
        stars = self.of_kind("star")
        return stars[0] if stars else None

    # ------------------------------------------------------------------ #
    #  State vectors
    # ------------------------------------------------------------------ #
    def get_state(self, node_id: str, t: float) -> tuple[np.ndarray, np.ndarray]:
        """Absolute position (AU) and velocity (m/s) of a node at ``t``.

        Sums host-relative states along the parent chain; only this chain
        is propagated.
        """
        r = np.zeros(3)
        v = np.zeros(3)
        for node in self.chain(node_id):
            if node.orbit is None:
                continue
            dr, dv = propagate(node.orbit, t)
            r += dr
            v += dv
        return r, v

    def get_position(self, node_id: str, t: float) -> np.ndarray:
        return self.get_state(node_id, t)[0]

    # ------------------------------------------------------------------ #
    #  Copy-on-write variants
    # ------------------------------------------------------------------ #
    def replace(self, node: Node) -> SystemSnapshot:
        if node.id not in self._nodes:
            raise UnknownNodeError(node.id)
        nodes = dict(self._nodes)
        nodes[node.id] = node
        return SystemSnapshot(nodes.values())

    def with_offset_anomaly(self, node_id: str, delta_rad: float) -> SystemSnapshot:
        """Snapshot in which one node leads (or trails) its orbit by ``delta_rad``."""
        node = self.get(node_id)
        if node.orbit is None:
            raise InputError(f"Node '{node_id}' has no orbit to offset")
        # Leading means ahead along the direction of motion
        if mean_motion(node.orbit) < 0.0:
            delta_rad = -delta_rad
        elements = node.orbit.elements
        m0 = math.fmod(elements.m0_rad + delta_rad, TWO_PI)
        orbit = dc_replace(node.orbit, elements=dc_replace(elements, m0_rad=m0))
        logger.debug("Offset '%s' mean anomaly by %.4f rad", node_id, delta_rad)
        return self.replace(dc_replace(node, orbit=orbit))
