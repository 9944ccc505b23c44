import threading
from collections import Counter

from hashring.core.ring import Ring
from hashring.utils.config import RingConfig


def make_ring_config(ring_id: str) -> RingConfig:
    """Helper to create ring config"""
    return RingConfig(ring_id=ring_id, log_level="WARNING")


def test_readers_never_see_partial_placement():
    """Concurrent lookups only ever observe fully placed servers"""
    config = make_ring_config("concurrent_add")
    ring = Ring(["seed"], config)
    stop = threading.Event()
    violations: list[str] = []
    lookups: Counter[str] = Counter()

    def reader(reader_id: int):
        i = 0
        while not stop.is_set():
            snapshot = ring.positions
            counts = Counter(snapshot.values())
            if any(c != config.positions_per_server for c in counts.values()):
                violations.append(f"reader {reader_id}: {dict(counts)}")
            server = ring.get_server_for_key(f"reader-{reader_id}-{i}")
            lookups[server] += 1
            i += 1

    readers = [threading.Thread(target=reader, args=(n,)) for n in range(4)]
    for t in readers:
        t.start()

    for i in range(40):
        _ = ring.add_server(f"server-{i}")

    stop.set()
    for t in readers:
        t.join()

    assert violations == []
    assert len(ring) == 41 * config.positions_per_server
    assert sum(lookups.values()) > 0


def test_concurrent_writers_keep_ring_consistent():
    config = make_ring_config("concurrent_writers")
    ring = Ring([], config)

    def writer(prefix: str):
        for i in range(10):
            _ = ring.add_server(f"{prefix}-{i}")

    writers = [threading.Thread(target=writer, args=(p,)) for p in "abcd"]
    for t in writers:
        t.start()
    for t in writers:
        t.join()

    assert len(ring) == 40 * config.positions_per_server
    assert len(ring.servers) == 40
    claimed = [p for s in ring.servers for p in ring.positions_of(s)]
    assert len(claimed) == len(set(claimed)) == len(ring)


def test_removal_under_concurrent_lookups():
    config = make_ring_config("concurrent_remove")
    ring = Ring([f"server-{i}" for i in range(10)], config)
    stop = threading.Event()
    errors: list[Exception] = []

    def reader():
        i = 0
        while not stop.is_set():
            try:
                _ = ring.get_server_for_key(f"key-{i}")
            except Exception as e:
                errors.append(e)
            i += 1

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()

    for i in range(9):
        _ = ring.remove_server(f"server-{i}")

    stop.set()
    for t in threads:
        t.join()

    assert errors == []
    assert ring.servers == ["server-9"]
