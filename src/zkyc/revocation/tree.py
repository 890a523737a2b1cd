"""The issuer's versioned revocation tree.

A fixed-depth binary Merkle tree whose leaves are the hashes of currently valid credential commitments. The
issuer is the only writer: changes are staged and applied in one atomic :meth:`RevocationTree.commit`, which
publishes exactly one new root version. Readers work on immutable :class:`TreeSnapshot` objects, so they observe
either the previous version or the committed one, never a partial batch.

Every update changes the Merkle path of many leaves, so holders call
:meth:`RevocationTree.fetch_current_path` before proving; proofs built on an older version stay checkable against
that version through the :class:`RootLog` until it is retired.
"""

import logging
import threading
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType

from zkyc.config import ProtocolConfig
from zkyc.errors import MerkleProofInvalid, Verdict
from zkyc.hash.poseidon import HashOut, two_to_one
from zkyc.revocation.proof import MerkleProof, revocation_leaf, verify_membership

logger = logging.getLogger(__name__)


def empty_digests(depth: int) -> tuple[HashOut, ...]:
    """Digests of empty subtrees: `empty[0]` is the empty leaf, `empty[i + 1] = H(empty[i], empty[i])`."""
    out = [HashOut.zero()]
    for _ in range(depth):
        out.append(two_to_one(out[-1], out[-1]))
    return tuple(out)


def hash_leaves(commitments: Iterable[HashOut], max_workers: int | None = None) -> list[HashOut]:
    """Compute the leaves of many credential commitments on a worker pool."""
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(revocation_leaf, commitments))


@dataclass(frozen=True)
class RootRecord:
    """One entry of the published root feed."""

    version: int
    root: HashOut
    timestamp: datetime

    def to_dict(self) -> dict:
        return {"version": self.version, "root": self.root.to_bytes().hex(), "timestamp": self.timestamp.isoformat()}


class RootLog:
    """Append-only log of published roots, with a retention policy applied by version."""

    def __init__(self):
        self._records: list[RootRecord] = []
        self._retired: set[int] = set()

    def append(self, record: RootRecord) -> None:
        if self._records and record.version != self._records[-1].version + 1:
            msg = f"Version {record.version} does not follow {self._records[-1].version}"
            raise ValueError(msg)
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(list(self._records))

    @property
    def latest(self) -> RootRecord:
        return self._records[-1]

    def get(self, version: int) -> RootRecord:
        """Return the record of `version`.

        Raises:
            KeyError: If the version was never published.
        """
        first = self._records[0].version if self._records else 0
        if not first <= version < first + len(self._records):
            msg = f"Root version {version} was never published"
            raise KeyError(msg)
        return self._records[version - first]

    def retire(self, version: int) -> None:
        self.get(version)
        if version == self.latest.version:
            msg = "The current root version cannot be retired"
            raise ValueError(msg)
        self._retired.add(version)

    def is_retained(self, version: int) -> bool:
        try:
            self.get(version)
        except KeyError:
            return False
        return version not in self._retired

    def feed(self) -> list[dict]:
        """The published (version, root, timestamp) feed, oldest first."""
        return [record.to_dict() | {"retired": record.version in self._retired} for record in self._records]

    def check(self, proof: MerkleProof, version: int | None = None) -> Verdict:
        """Check `proof` against the root of `version` (by default, the version the proof was built on).

        Returns:
            A successful verdict, or a failed one carrying :class:`MerkleProofInvalid`.
        """
        version = proof.root_version if version is None else version
        if not self.is_retained(version):
            return Verdict.failure(MerkleProofInvalid(f"Root version {version} is not retained"))
        if not verify_membership(self.get(version).root, proof):
            return Verdict.failure(MerkleProofInvalid(f"The path does not lead to the root of version {version}"))
        return Verdict.success()


@dataclass(frozen=True)
class TreeSnapshot:
    """An immutable view of one tree version.

    Attributes:
        version (int): The version number.
        depth (int): The tree depth.
        nodes (Mapping[tuple[int, int], HashOut]): Non-empty nodes keyed by (level, index); level 0 holds leaves.
        positions (Mapping[HashOut, int]): Leaf index of every live leaf.
        next_index (int): The first never-used leaf slot.
    """

    version: int
    depth: int
    nodes: Mapping[tuple[int, int], HashOut]
    positions: Mapping[HashOut, int]
    next_index: int
    empty: tuple[HashOut, ...] = field(repr=False)

    def node(self, level: int, index: int) -> HashOut:
        return self.nodes.get((level, index), self.empty[level])

    @property
    def root(self) -> HashOut:
        return self.node(self.depth, 0)

    def __contains__(self, leaf: HashOut) -> bool:
        return leaf in self.positions

    def __len__(self) -> int:
        return len(self.positions)

    def prove(self, leaf: HashOut) -> MerkleProof:
        """Return the sibling path of `leaf` in this version.

        Raises:
            ValueError: If `leaf` is not in the tree.
        """
        if leaf not in self.positions:
            msg = f"Leaf {leaf.to_bytes().hex()} is not in version {self.version}"
            raise ValueError(msg)
        index = self.positions[leaf]
        siblings = tuple(self.node(level, (index >> level) ^ 1) for level in range(self.depth))
        bits = tuple((index >> level) & 1 for level in range(self.depth))
        return MerkleProof(leaf=leaf, siblings=siblings, path_bits=bits, root_version=self.version)


class RevocationTree:
    """The single-writer revocation accumulator.

    Args:
        depth (int | None): Tree depth. Defaults to `config.tree_depth`.
        config (ProtocolConfig | None): Protocol configuration. Defaults to `ProtocolConfig()`.
    """

    def __init__(self, depth: int | None = None, config: ProtocolConfig | None = None):
        self.config = config or ProtocolConfig()
        self.depth = depth if depth is not None else self.config.tree_depth
        if self.depth <= 0:
            msg = f"The tree depth must be positive, got {self.depth}"
            raise ValueError(msg)
        self._empty = empty_digests(self.depth)
        self._lock = threading.Lock()
        self._pending_inserts: list[HashOut] = []
        self._pending_removes: list[HashOut] = []
        genesis = TreeSnapshot(
            version=0,
            depth=self.depth,
            nodes=MappingProxyType({}),
            positions=MappingProxyType({}),
            next_index=0,
            empty=self._empty,
        )
        self._snapshots: dict[int, TreeSnapshot] = {0: genesis}
        self._current = genesis
        self.root_log = RootLog()
        self.root_log.append(RootRecord(version=0, root=genesis.root, timestamp=datetime.now(UTC)))

    @property
    def capacity(self) -> int:
        return 1 << self.depth

    @property
    def version(self) -> int:
        return self._current.version

    def __len__(self) -> int:
        return len(self._current)

    def __contains__(self, leaf: HashOut) -> bool:
        return leaf in self._current

    # Writer

    def stage_insert(self, leaf: HashOut) -> None:
        """Stage `leaf` for insertion in the next batch.

        Staging a leaf that is pending removal cancels the removal and keeps its slot.

        Raises:
            ValueError: If the leaf is already present or staged, or the tree is full.
        """
        with self._lock:
            if leaf in self._pending_removes:
                self._pending_removes.remove(leaf)
                return
            if leaf in self._current.positions or leaf in self._pending_inserts:
                msg = f"Leaf {leaf.to_bytes().hex()} is already in the tree"
                raise ValueError(msg)
            if self._current.next_index + len(self._pending_inserts) >= self.capacity:
                msg = f"The revocation tree is full ({self.capacity} slots)"
                raise ValueError(msg)
            self._pending_inserts.append(leaf)

    def stage_remove(self, leaf: HashOut) -> None:
        """Stage `leaf` for removal in the next batch.

        Raises:
            ValueError: If the leaf is not in the tree or is already staged for removal.
        """
        with self._lock:
            if leaf in self._pending_inserts:
                self._pending_inserts.remove(leaf)
                return
            if leaf not in self._current.positions or leaf in self._pending_removes:
                msg = f"Leaf {leaf.to_bytes().hex()} is not in the tree"
                raise ValueError(msg)
            self._pending_removes.append(leaf)

    insert = stage_insert
    remove = stage_remove

    def _hash_layer(self, pairs: Sequence[tuple[HashOut, HashOut]]) -> list[HashOut]:
        if self.config.max_workers is None or self.config.max_workers == 1 or len(pairs) < 64:
            return [two_to_one(left, right) for left, right in pairs]
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            return list(executor.map(lambda pair: two_to_one(*pair), pairs))

    def commit(self, timestamp: datetime | None = None) -> RootRecord:
        """Apply the staged batch atomically and publish the new root version.

        Args:
            timestamp (datetime | None): Publication time. Defaults to now (UTC).

        Returns:
            The published root record.
        """
        with self._lock:
            previous = self._current
            nodes = dict(previous.nodes)
            positions = dict(previous.positions)
            next_index = previous.next_index
            dirty = set()
            for leaf in self._pending_removes:
                index = positions.pop(leaf)
                nodes.pop((0, index), None)
                dirty.add(index)
            for leaf in self._pending_inserts:
                positions[leaf] = next_index
                nodes[(0, next_index)] = leaf
                dirty.add(next_index)
                next_index += 1

            for level in range(self.depth):
                parents = sorted({index >> 1 for index in dirty})
                pairs = [
                    (nodes.get((level, 2 * i), self._empty[level]), nodes.get((level, 2 * i + 1), self._empty[level]))
                    for i in parents
                ]
                for i, digest in zip(parents, self._hash_layer(pairs)):
                    if digest == self._empty[level + 1]:
                        nodes.pop((level + 1, i), None)
                    else:
                        nodes[(level + 1, i)] = digest
                dirty = set(parents)

            snapshot = TreeSnapshot(
                version=previous.version + 1,
                depth=self.depth,
                nodes=MappingProxyType(nodes),
                positions=MappingProxyType(positions),
                next_index=next_index,
                empty=self._empty,
            )
            record = RootRecord(
                version=snapshot.version, root=snapshot.root, timestamp=timestamp or datetime.now(UTC)
            )
            inserted, removed = len(self._pending_inserts), len(self._pending_removes)
            self._pending_inserts = []
            self._pending_removes = []
            self._snapshots[snapshot.version] = snapshot
            self.root_log.append(record)
            self._current = snapshot
            self._apply_retention()

        logger.info(
            f"Revocation tree version {record.version} published: {inserted} inserted, {removed} removed, "
            f"{len(snapshot)} live leaves"
        )
        return record

    def _apply_retention(self) -> None:
        keep = self.config.retained_versions
        if keep is None:
            return
        for version in sorted(self._snapshots):
            if version <= self._current.version - keep:
                self._retire_locked(version)

    def _retire_locked(self, version: int) -> None:
        if version == self._current.version:
            msg = "The current version cannot be retired"
            raise ValueError(msg)
        self._snapshots.pop(version, None)
        self.root_log.retire(version)
        logger.info(f"Revocation tree version {version} retired")

    def retire(self, version: int) -> None:
        """Drop the snapshot of `version` and mark it retired in the root log.

        Raises:
            ValueError: If `version` is the current version.
            KeyError: If `version` was never published.
        """
        with self._lock:
            self._retire_locked(version)

    # Readers

    def snapshot(self, version: int | None = None) -> TreeSnapshot:
        """Return the immutable snapshot of `version` (the current one by default).

        Raises:
            KeyError: If the version is unknown or retired.
        """
        if version is None:
            return self._current
        try:
            return self._snapshots[version]
        except KeyError:
            msg = f"Version {version} is not retained"
            raise KeyError(msg) from None

    def root(self, version: int | None = None) -> HashOut:
        return self.snapshot(version).root

    def prove_membership(self, leaf: HashOut, version: int | None = None) -> MerkleProof:
        """Return the path of `leaf` to the root of `version` (the current one by default)."""
        return self.snapshot(version).prove(leaf)

    def fetch_current_path(self, leaf: HashOut) -> MerkleProof:
        """Return the path of `leaf` against the latest published root."""
        return self._current.prove(leaf)
