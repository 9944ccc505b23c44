import threading
from bisect import bisect_left
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType

from .errors import (
    CapacityExceededError,
    DuplicateServerError,
    EmptyRingError,
    PlacementExhaustedError,
    UnknownServerError,
)
from .hashing import RING_SIZE, HashAlgorithm, ring_hash, ring_slots
from ..utils.config import DuplicatePolicy, RingConfig, get_config
from ..utils.logger import RingLogger, init_logger


@dataclass(frozen=True)
class _RingState:
    """Immutable snapshot of the ring, replaced as a whole on every mutation"""

    positions: Mapping[int, str]  # position -> server
    sorted_positions: tuple[int, ...]
    owners: Mapping[str, tuple[int, ...]]  # server -> positions, first-added order

    @classmethod
    def build(
        cls, positions: dict[int, str], owners: dict[str, tuple[int, ...]]
    ) -> "_RingState":
        return cls(
            positions=MappingProxyType(positions),
            sorted_positions=tuple(sorted(positions)),
            owners=MappingProxyType(owners),
        )


_EMPTY_STATE = _RingState.build({}, {})


class Ring:
    """Consistent hashing ring with a fixed number of positions per server.

    Every server is placed at ``positions_per_server`` pseudo-random positions
    derived from its name and a salt. A key belongs to the server at the first
    occupied position at or after the key's hash, wrapping around the ring.

    Mutations build a new snapshot under a lock and publish it in a single
    assignment, so lookups never need the lock and never see a server that is
    only partly placed.
    """

    def __init__(self, servers: Iterable[str] = (), config: RingConfig | None = None):
        if config is None:
            config = get_config()
        else:
            config.validate()
        # Private copy, later edits to the caller's config do not reach the ring
        config = replace(config)
        self.config: RingConfig = config
        self.logger: RingLogger = init_logger(
            config.ring_id, config.log_level, config.log_dir
        )

        self.positions_per_server: int = config.positions_per_server
        self.algorithm: HashAlgorithm = config.algorithm
        self.salt_stride: int = config.salt_stride
        self.max_placement_attempts: int = config.max_placement_attempts
        self.duplicate_policy: DuplicatePolicy = config.policy
        self.capacity: int = ring_slots(self.algorithm)

        self._state: _RingState = _EMPTY_STATE
        self._write_lock: threading.Lock = threading.Lock()

        for server in servers:
            _ = self.add_server(server)

    @classmethod
    def from_positions(
        cls, positions: Mapping[int, str], config: RingConfig | None = None
    ) -> "Ring":
        """Build a ring from an explicit position -> server mapping.

        Meant for diagnostics and fixed lookup fixtures. Positions are only
        checked to lie in 0..255: servers may own any number of positions,
        and positions the configured hash never produces (255 under sip13)
        are accepted.
        """
        ring = cls(config=config)

        owners: dict[str, list[int]] = {}
        for position in sorted(positions):
            if not 0 <= position < RING_SIZE:
                raise ValueError(f"Invalid ring position: {position}")
            owners.setdefault(positions[position], []).append(position)

        ring._state = _RingState.build(
            dict(positions), {s: tuple(p) for s, p in owners.items()}
        )
        return ring

    def _hash(self, key: str) -> int:
        """Hash a key to a position on the ring"""
        return ring_hash(key, self.algorithm)

    def _place(self, server: str, occupied: Mapping[int, str]) -> tuple[int, ...]:
        """Find free positions for a server by hashing its name with salts"""
        claimed: list[int] = []
        salt = 0
        attempts = 0

        while len(claimed) < self.positions_per_server:
            if attempts >= self.max_placement_attempts:
                raise PlacementExhaustedError(server, attempts)

            position = self._hash(f"{server}_{salt}")
            salt += self.salt_stride
            attempts += 1

            if position in occupied or position in claimed:
                self.logger.debug(
                    f"Position {position} taken, retrying {server} with salt {salt}"
                )
                continue

            claimed.append(position)

        return tuple(claimed)

    def add_server(self, server: str) -> tuple[int, ...]:
        """Add a server to the ring.

        Returns the positions claimed by this call. Raises
        CapacityExceededError or PlacementExhaustedError without touching
        the ring when the server cannot be fully placed.
        """
        with self._write_lock:
            state = self._state

            if server in state.owners:
                policy = self.duplicate_policy
                if policy is DuplicatePolicy.IGNORE:
                    self.logger.debug(f"Server {server} already on the ring, ignoring")
                    return ()
                if policy is DuplicatePolicy.REJECT:
                    self.logger.warning(f"Rejected duplicate server {server}")
                    raise DuplicateServerError(server)

            occupied = len(state.positions)
            if occupied + self.positions_per_server > self.capacity:
                self.logger.warning(
                    f"Ring full ({occupied}/{self.capacity}), cannot add {server}"
                )
                raise CapacityExceededError(
                    server, occupied, self.positions_per_server, self.capacity
                )

            try:
                claimed = self._place(server, state.positions)
            except PlacementExhaustedError as e:
                self.logger.error(str(e))
                raise

            positions = dict(state.positions)
            for position in claimed:
                positions[position] = server

            owners = dict(state.owners)
            owners[server] = owners.get(server, ()) + claimed

            self._state = _RingState.build(positions, owners)

        self.logger.info(f"Added server {server} at positions {sorted(claimed)}")
        return claimed

    def remove_server(self, server: str) -> tuple[int, ...]:
        """Remove a server and all of its positions, returning the freed ones"""
        with self._write_lock:
            state = self._state

            if server not in state.owners:
                self.logger.warning(f"Cannot remove unknown server {server}")
                raise UnknownServerError(server)

            freed = state.owners[server]

            positions = dict(state.positions)
            for position in freed:
                del positions[position]

            owners = dict(state.owners)
            del owners[server]

            self._state = _RingState.build(positions, owners)

        self.logger.info(f"Removed server {server} from positions {sorted(freed)}")
        return tuple(sorted(freed))

    def get_server_for_key(self, key: str) -> str:
        """Get the server responsible for a key"""
        state = self._state
        if not state.sorted_positions:
            raise EmptyRingError()

        hash_value = self._hash(key)

        # First occupied position at or after hash_value
        idx = bisect_left(state.sorted_positions, hash_value)

        # Wrap around if necessary
        if idx == len(state.sorted_positions):
            idx = 0

        return state.positions[state.sorted_positions[idx]]

    def get_servers_for_key(self, key: str, count: int) -> list[str]:
        """Get up to count distinct servers for a key, walking clockwise"""
        state = self._state
        if not state.sorted_positions:
            raise EmptyRingError()
        if count <= 0:
            return []

        hash_value = self._hash(key)
        idx = bisect_left(state.sorted_positions, hash_value)

        result: list[str] = []
        seen: set[str] = set()

        # Collect unique servers clockwise
        for _ in range(len(state.sorted_positions)):
            if idx >= len(state.sorted_positions):
                idx = 0

            server = state.positions[state.sorted_positions[idx]]
            if server not in seen:
                result.append(server)
                seen.add(server)

                if len(result) == count:
                    break

            idx += 1

        return result

    def positions_of(self, server: str) -> tuple[int, ...]:
        """Positions owned by a server, in placement order"""
        return self._state.owners.get(server, ())

    @property
    def servers(self) -> list[str]:
        """Servers on the ring, in the order they were first added"""
        return list(self._state.owners)

    @property
    def positions(self) -> Mapping[int, str]:
        """Read-only view of the current position -> server mapping"""
        return self._state.positions

    def render(self) -> str:
        """One "position,server" line per occupied position, ascending"""
        state = self._state
        return "".join(
            f"{position},{state.positions[position]}\n"
            for position in state.sorted_positions
        )

    def __str__(self) -> str:
        return self.render()

    def __len__(self) -> int:
        return len(self._state.positions)

    def __contains__(self, server: object) -> bool:
        return server in self._state.owners
