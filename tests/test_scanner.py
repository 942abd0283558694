# File: tests/test_scanner.py
import pytest

from conftest import FakeRemote, addr, build_tree
from site_loader.config import RetryProfile
from site_loader.errors import FetchFailure, MalformedNodeError, RemoteCallError, ScanFailure
from site_loader.scanner import FlatScanner, TreeScanner

PROFILE = RetryProfile(max_attempts=2, base_delay=0.0, max_delay=0.0)

SHAPES = [
    [b"a"],
    [b"a", b"b", b"c"],
    [[b"a"], [b"b", b"c", b"d"], [b"e", b"f"]],
    [[[b"a", b"b"]], [[b"c"], [b"d", b"e"]], [[b"f"]]],
    [[b"a", b"b", b"c", b"d", b"e", b"f", b"g"], [b"h"]],
]


@pytest.mark.asyncio()
@pytest.mark.parametrize("shape", SHAPES)
async def test_scan_emits_contiguous_indices_left_to_right(shape):
    root, depth, tree = build_tree(shape)
    scanner = TreeScanner(FakeRemote(tree.nodes).read, PROFILE)

    leaves = await scanner.scan(root, depth)

    assert [c.index for c in leaves] == list(range(len(tree.leaves)))
    assert [c.address for c in leaves] == tree.leaves


@pytest.mark.asyncio()
async def test_depth_zero_root_is_the_only_leaf():
    remote = FakeRemote({})
    leaves = await TreeScanner(remote.read, PROFILE).scan(addr(5), 0)

    assert [(c.index, c.address) for c in leaves] == [(0, addr(5))]
    assert not remote.calls


@pytest.mark.asyncio()
async def test_leaves_are_reported_in_discovery_order():
    root, depth, tree = build_tree([[b"a", b"b"], [b"c"]])
    seen = []

    await TreeScanner(FakeRemote(tree.nodes).read, PROFILE).scan(root, depth, on_leaf=seen.append)

    assert [c.index for c in seen] == [0, 1, 2]


@pytest.mark.asyncio()
async def test_leaf_payloads_are_not_read_during_scan():
    root, depth, tree = build_tree([b"a", b"b"])
    remote = FakeRemote(tree.nodes)

    await TreeScanner(remote.read, PROFILE).scan(root, depth)

    assert set(remote.calls) == {root}


@pytest.mark.asyncio()
async def test_malformed_root_aborts_without_leaves():
    root = addr(1)
    remote = FakeRemote({root: b"\x01" * 25})
    seen = []

    with pytest.raises(MalformedNodeError) as info:
        await TreeScanner(remote.read, PROFILE).scan(root, 1, on_leaf=seen.append)

    assert info.value.length == 25
    assert info.value.address == root
    assert seen == []


@pytest.mark.asyncio()
async def test_malformed_inner_node_aborts_scan():
    root, depth, tree = build_tree([[b"a"], [b"b"]])
    second = tree.nodes[root][20:40]
    tree.nodes[second] += b"\x00" * 5

    with pytest.raises(MalformedNodeError):
        await TreeScanner(FakeRemote(tree.nodes).read, PROFILE).scan(root, depth)


@pytest.mark.asyncio()
async def test_unreadable_internal_node_is_fatal():
    root, depth, tree = build_tree([[b"a"], [b"b"]])
    broken = tree.nodes[root][20:40]
    remote = FakeRemote(tree.nodes, failing=[broken])

    with pytest.raises(ScanFailure) as info:
        await TreeScanner(remote.read, PROFILE).scan(root, depth)

    assert info.value.address == broken
    assert isinstance(info.value.__cause__, FetchFailure)
    assert remote.calls[broken] == PROFILE.max_attempts


@pytest.mark.asyncio()
async def test_empty_internal_node_has_no_leaves():
    root = addr(1)
    leaves = await TreeScanner(FakeRemote({root: b""}).read, PROFILE).scan(root, 2)
    assert leaves == []


@pytest.mark.asyncio()
async def test_negative_depth_rejected():
    with pytest.raises(ValueError):
        await TreeScanner(FakeRemote({}).read, PROFILE).scan(addr(1), -1)


@pytest.mark.asyncio()
async def test_flat_scanner_uses_index_order():
    addresses = [addr(10 + i) for i in range(4)]
    remote = FakeRemote({}, flat=addresses)
    master = addr(99)

    leaves = await FlatScanner(lambda i: remote.resolve_chunk(master, i), PROFILE, master).scan(4)

    assert [(c.index, c.address) for c in leaves] == list(enumerate(addresses))


@pytest.mark.asyncio()
async def test_flat_scanner_resolve_failure_is_fatal():
    async def resolve(index):
        if index == 2:
            raise RemoteCallError("gone")
        return addr(index)

    with pytest.raises(ScanFailure):
        await FlatScanner(resolve, PROFILE, addr(99)).scan(4)
