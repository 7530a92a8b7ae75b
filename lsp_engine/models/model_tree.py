"""Criterion tree models.

The tree is stored as an arena: a map of node id -> CriterionNode, where each
node keeps its parent id and the ordered ids of its children. Node numbers
("1", "12", "121", ...) are derived from this structure on demand and are
never parsed back into it.
"""

import logging
import uuid
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from lsp_engine.consts import (
    DEFAULT_PENALTY,
    DEFAULT_REWARD,
    IMPACT_PRESETS,
    IMPORTANCE_MAX,
    IMPORTANCE_MIN,
)
from lsp_engine.errors import DomainError

logger = logging.getLogger(__name__)


class Connection(str, Enum):
    """Logic operator assigned to an internal node."""

    A = "A"
    SC_MINUS = "SC-"
    SC = "SC"
    SC_PLUS = "SC+"
    HC_MINUS = "HC-"
    HC = "HC"
    HC_PLUS = "HC+"
    HC_PLUS_PLUS = "HC++"
    SD_MINUS = "SD-"
    SD = "SD"
    SD_PLUS = "SD+"
    HD_MINUS = "HD-"
    HD = "HD"
    HD_PLUS = "HD+"
    HD_PLUS_PLUS = "HD++"
    CPA = "CPA"

    @property
    def family(self) -> str:
        """Operator family: A, SC, HC, SD, HD or CPA."""
        return self.value.rstrip("+-")

    @property
    def is_conjunctive(self) -> bool:
        return self.family in ("SC", "HC")

    @property
    def is_disjunctive(self) -> bool:
        return self.family in ("SD", "HD")

    @property
    def label(self) -> str:
        """Human-readable strength label shown next to the operator."""
        return _CONNECTION_LABELS[self]

    @property
    def legacy_code(self) -> int | None:
        """Numeric code used by older project files (None for CPA)."""
        return _CODES_BY_CONNECTION.get(self)

    @classmethod
    def parse(cls, value: Any) -> "Connection | None":
        """Resolve a connection from a member, a name or a numeric legacy code.

        Returns None when the value does not name any connection.
        """
        if isinstance(value, cls):
            return value
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return _CONNECTIONS_BY_CODE.get(value)
        if isinstance(value, str):
            text = value.strip().upper()
            if text.lstrip("-").isdigit():
                return _CONNECTIONS_BY_CODE.get(int(text))
            try:
                return cls(text)
            except ValueError:
                return None
        return None

    @classmethod
    def options(cls, family: str) -> list["Connection"]:
        """List the operators of one family, strictest first."""
        return list(_FAMILY_OPTIONS.get(family.upper(), ()))


_CONNECTION_LABELS = {
    Connection.A: "Arithmetic Mean",
    Connection.SC_MINUS: "Low",
    Connection.SC: "Medium",
    Connection.SC_PLUS: "High",
    Connection.HC_MINUS: "Low",
    Connection.HC: "Medium",
    Connection.HC_PLUS: "High",
    Connection.HC_PLUS_PLUS: "Extreme (Using only the smallest value)",
    Connection.SD_MINUS: "Low",
    Connection.SD: "Medium",
    Connection.SD_PLUS: "High",
    Connection.HD_MINUS: "Low",
    Connection.HD: "Medium",
    Connection.HD_PLUS: "High",
    Connection.HD_PLUS_PLUS: "Extreme (Using only the largest value)",
    Connection.CPA: "Mandatory and Optional",
}

_CONNECTIONS_BY_CODE = {
    4: Connection.A,
    1: Connection.SC_MINUS,
    2: Connection.SC,
    3: Connection.SC_PLUS,
    5: Connection.HC_MINUS,
    6: Connection.HC,
    7: Connection.HC_PLUS,
    8: Connection.HC_PLUS_PLUS,
    -1: Connection.SD_MINUS,
    -2: Connection.SD,
    -3: Connection.SD_PLUS,
    -5: Connection.HD_MINUS,
    -6: Connection.HD,
    -7: Connection.HD_PLUS,
    -8: Connection.HD_PLUS_PLUS,
}
_CODES_BY_CONNECTION = {connection: code for code, connection in _CONNECTIONS_BY_CODE.items()}

_FAMILY_OPTIONS = {
    "HC": (Connection.HC_PLUS_PLUS, Connection.HC_PLUS, Connection.HC, Connection.HC_MINUS),
    "SC": (Connection.SC_PLUS, Connection.SC, Connection.SC_MINUS),
    "SD": (Connection.SD_PLUS, Connection.SD, Connection.SD_MINUS),
    "HD": (Connection.HD_PLUS_PLUS, Connection.HD_PLUS, Connection.HD, Connection.HD_MINUS),
    "A": (Connection.A,),
    "CPA": (Connection.CPA,),
}


class PartialAbsorption(str, Enum):
    """Role of a child under a CPA node."""

    MANDATORY = "Mandatory"
    OPTIONAL = "Optional"

    @classmethod
    def _missing_(cls, value: object) -> "PartialAbsorption | None":
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


class ImpactLevel(str, Enum):
    """How strongly optional components move a CPA result."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def penalty_reward(self) -> "PenaltyReward":
        penalty, reward = IMPACT_PRESETS[self.value]
        return PenaltyReward(penalty=penalty, reward=reward)


class PenaltyReward(BaseModel):
    """Penalty/reward pair governing the partial absorption blend."""

    penalty: float = Field(default=DEFAULT_PENALTY, ge=0.0, le=1.0)
    reward: float = Field(default=DEFAULT_REWARD, ge=0.0, le=1.0)

    @classmethod
    def from_impact(cls, level: ImpactLevel | str) -> "PenaltyReward":
        return ImpactLevel(level).penalty_reward


class CriterionNode(BaseModel):
    """A single component of the evaluated object."""

    id: str = Field(description="Opaque identifier, stable across edits")
    name: str = Field(description="Display name")
    parent_id: str | None = Field(default=None, description="Parent node id (None for root)")
    children: list[str] = Field(default_factory=list, description="Ordered child ids")

    importance: int | None = Field(
        default=None,
        ge=IMPORTANCE_MIN,
        le=IMPORTANCE_MAX,
        description="Relative importance among siblings",
    )
    connection: Connection | None = Field(
        default=None, description="Aggregation operator (internal nodes only)"
    )
    partial_absorption: PartialAbsorption | None = Field(
        default=None, description="Mandatory/Optional tag under a CPA parent"
    )
    penalty_reward: PenaltyReward | None = Field(
        default=None, description="CPA blend parameters (CPA nodes only)"
    )
    mandatory_connection: Connection = Field(
        default=Connection.A, description="Operator reducing the mandatory group of a CPA node"
    )
    optional_connection: Connection = Field(
        default=Connection.A, description="Operator reducing the optional group of a CPA node"
    )

    @field_validator("connection", "mandatory_connection", "optional_connection", mode="before")
    @classmethod
    def _parse_connection(cls, value: Any, info: ValidationInfo) -> Any:
        subset = info.field_name != "connection"
        if value is None or value == "":
            # Subset operators of a CPA node fall back to the arithmetic mean
            return Connection.A if subset else None
        connection = Connection.parse(value)
        if connection is None:
            raise ValueError(f"Unknown connection type: {value!r}")
        if subset and connection == Connection.CPA:
            raise ValueError(f"{info.field_name} cannot be CPA")
        return connection

    @property
    def is_leaf(self) -> bool:
        return not self.children


class CriterionTree(BaseModel):
    """Decomposition tree of the evaluated object."""

    root_id: str
    nodes: dict[str, CriterionNode]

    @model_validator(mode="after")
    def _check_structure(self) -> "CriterionTree":
        """Validate parent/child links, reachability and acyclicity."""
        root = self.nodes.get(self.root_id)
        if root is None:
            raise ValueError(f"Root node '{self.root_id}' is not in the tree")
        if root.parent_id is not None:
            raise ValueError(f"Root node '{self.root_id}' must not have a parent")

        for node_id, node in self.nodes.items():
            if node.id != node_id:
                raise ValueError(f"Node stored under '{node_id}' has id '{node.id}'")
            if len(set(node.children)) != len(node.children):
                raise ValueError(f"Node '{node_id}' lists a child twice")
            for child_id in node.children:
                child = self.nodes.get(child_id)
                if child is None:
                    raise ValueError(f"Node '{node_id}' references missing child '{child_id}'")
                if child.parent_id != node_id:
                    raise ValueError(
                        f"Child '{child_id}' of '{node_id}' has parent_id '{child.parent_id}'"
                    )

        visited: set[str] = set()
        stack = [self.root_id]
        while stack:
            node_id = stack.pop()
            if node_id in visited:
                raise ValueError(f"Cycle detected at node '{node_id}'")
            visited.add(node_id)
            stack.extend(self.nodes[node_id].children)

        unreachable = set(self.nodes) - visited
        if unreachable:
            raise ValueError(f"Nodes not reachable from root: {sorted(unreachable)}")
        return self

    # === NAVIGATION ===

    @property
    def root(self) -> CriterionNode:
        return self.nodes[self.root_id]

    def node(self, node_id: str) -> CriterionNode:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise KeyError(f"Unknown node id: {node_id}") from None

    def children(self, node_id: str) -> list[CriterionNode]:
        return [self.nodes[child_id] for child_id in self.node(node_id).children]

    def parent(self, node_id: str) -> CriterionNode | None:
        parent_id = self.node(node_id).parent_id
        return self.nodes[parent_id] if parent_id is not None else None

    def iter_preorder(self, node_id: str | None = None) -> Iterator[CriterionNode]:
        """Yield nodes depth-first, parents before children, siblings in order."""
        stack = [node_id if node_id is not None else self.root_id]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def leaves(self) -> list[CriterionNode]:
        return [node for node in self.iter_preorder() if node.is_leaf]

    def depth(self, node_id: str) -> int:
        depth = 0
        node = self.node(node_id)
        while node.parent_id is not None:
            node = self.nodes[node.parent_id]
            depth += 1
        return depth

    # === NODE NUMBERS (derived view) ===

    def node_number(self, node_id: str) -> str:
        """Path of 1-based sibling ranks from the root, e.g. "121"."""
        ranks: list[str] = []
        node = self.node(node_id)
        while node.parent_id is not None:
            parent = self.nodes[node.parent_id]
            ranks.append(str(parent.children.index(node.id) + 1))
            node = parent
        ranks.append("1")
        return "".join(reversed(ranks))

    def node_numbers(self) -> dict[str, str]:
        """Node numbers for every node, in preorder."""
        numbers = {self.root_id: "1"}
        for node in self.iter_preorder():
            for rank, child_id in enumerate(node.children, 1):
                numbers[child_id] = f"{numbers[node.id]}{rank}"
        return numbers

    def find_by_number(self, number: str) -> CriterionNode | None:
        """Look up a node by its derived number.

        Ranks above 9 make numbers ambiguous; the first match in preorder wins.
        """
        for node_id, node_number in self.node_numbers().items():
            if node_number == number:
                return self.nodes[node_id]
        return None

    # === LIFECYCLE ===

    @classmethod
    def new(cls, root_name: str, root_id: str = "1") -> "CriterionTree":
        """Create a tree holding only its root node."""
        return cls(root_id=root_id, nodes={root_id: CriterionNode(id=root_id, name=root_name)})

    def add_child(self, parent_id: str, name: str, node_id: str | None = None, **attributes: Any) -> CriterionNode:
        """Append a new child under parent_id."""
        parent = self.node(parent_id)
        node_id = node_id or uuid.uuid4().hex
        if node_id in self.nodes:
            raise ValueError(f"Node id '{node_id}' already exists")
        child = CriterionNode(id=node_id, name=name, parent_id=parent_id, **attributes)
        self.nodes[node_id] = child
        parent.children.append(node_id)
        return child

    def decompose(self, parent_id: str, names: Iterable[str]) -> list[CriterionNode]:
        """Split a node into named children, appended in order."""
        return [self.add_child(parent_id, name) for name in names]

    def remove_subtree(self, node_id: str) -> list[str]:
        """Delete a node and all of its descendants.

        Returns:
            Ids of the removed nodes, in preorder
        """
        node = self.node(node_id)
        if node.parent_id is None:
            raise DomainError("The root node cannot be removed")
        removed = [n.id for n in self.iter_preorder(node_id)]
        self.nodes[node.parent_id].children.remove(node_id)
        for removed_id in removed:
            del self.nodes[removed_id]
        return removed

    def assign(self, node_id: str, **attributes: Any) -> CriterionNode:
        """Set importance, connection or CPA attributes on a node (validated)."""
        structural = {"id", "parent_id", "children"} & attributes.keys()
        if structural:
            raise ValueError(f"Structural fields cannot be assigned: {sorted(structural)}")
        current = self.node(node_id)
        updated = CriterionNode.model_validate({**current.model_dump(), **attributes})
        self.nodes[node_id] = updated
        return updated

    # === COMPLETENESS ===

    def check_complete(self) -> list[str]:
        """List configuration problems that prevent evaluation."""
        problems: list[str] = []
        numbers = self.node_numbers()
        for node in self.iter_preorder():
            label = f"node {numbers[node.id]} '{node.name}'"
            if node.is_leaf:
                continue
            children = self.children(node.id)
            if node.connection is None:
                problems.append(f"{label} has children but no connection")
            if len(children) >= 2:
                for child in children:
                    if child.importance is None:
                        problems.append(
                            f"node {numbers[child.id]} '{child.name}' has siblings but no importance"
                        )
            if node.connection == Connection.CPA:
                untagged = [c for c in children if c.partial_absorption is None]
                for child in untagged:
                    problems.append(
                        f"node {numbers[child.id]} '{child.name}' is under a CPA node "
                        "but is neither Mandatory nor Optional"
                    )
                if not any(c.partial_absorption == PartialAbsorption.MANDATORY for c in children):
                    problems.append(f"{label} uses CPA but has no mandatory children")
        return problems

    def require_complete(self) -> None:
        """Raise DomainError if the tree cannot be evaluated."""
        problems = self.check_complete()
        if problems:
            raise DomainError("Incomplete criterion tree: " + "; ".join(problems))

    # === NESTED LAYOUT ===

    @classmethod
    def from_nested(cls, data: dict[str, Any]) -> "CriterionTree":
        """Build a tree from nested {id, name, attributes, children} records.

        Numeric ids are converted to strings. Stored nodeNumber values are
        compared with the derived numbers and ignored.
        """
        nodes: dict[str, CriterionNode] = {}
        stored_numbers: dict[str, str] = {}

        def visit(raw: dict[str, Any], parent_id: str | None) -> str:
            node_id = str(raw["id"]) if raw.get("id") is not None else uuid.uuid4().hex
            if node_id in nodes:
                raise ValueError(f"Duplicate node id '{node_id}' in nested tree")
            attributes = raw.get("attributes") or {}
            node = CriterionNode(
                id=node_id,
                name=raw.get("name") or node_id,
                parent_id=parent_id,
                importance=attributes.get("importance"),
                connection=attributes.get("connection"),
                partial_absorption=attributes.get("partialabsorption")
                or attributes.get("partial_absorption"),
                penalty_reward=attributes.get("penaltyreward") or attributes.get("penalty_reward"),
                mandatory_connection=attributes.get("mandatory_connection") or Connection.A,
                optional_connection=attributes.get("optional_connection") or Connection.A,
            )
            nodes[node_id] = node
            if raw.get("nodeNumber"):
                stored_numbers[node_id] = str(raw["nodeNumber"])
            for child in raw.get("children") or []:
                node.children.append(visit(child, node_id))
            return node_id

        root_id = visit(data, None)
        tree = cls(root_id=root_id, nodes=nodes)

        derived = tree.node_numbers()
        for node_id, stored in stored_numbers.items():
            if derived[node_id] != stored:
                logger.warning(
                    f"Node '{node_id}' stored number {stored} disagrees with tree position "
                    f"{derived[node_id]}; using {derived[node_id]}"
                )
        return tree

    def to_nested(self, node_id: str | None = None) -> dict[str, Any]:
        """Export the (sub)tree in the nested record layout."""
        numbers = self.node_numbers()

        def build(node: CriterionNode) -> dict[str, Any]:
            return {
                "id": node.id,
                "name": node.name,
                "nodeNumber": numbers[node.id],
                "attributes": {
                    "importance": node.importance,
                    "connection": node.connection.value if node.connection else None,
                    "partialabsorption": (
                        node.partial_absorption.value if node.partial_absorption else None
                    ),
                    "penaltyreward": (
                        node.penalty_reward.model_dump() if node.penalty_reward else None
                    ),
                    "mandatory_connection": node.mandatory_connection.value,
                    "optional_connection": node.optional_connection.value,
                },
                "children": [build(child) for child in self.children(node.id)],
            }

        return build(self.node(node_id if node_id is not None else self.root_id))
