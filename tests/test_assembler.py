# File: tests/test_assembler.py
import itertools

import pytest

from conftest import addr
from site_loader.assembler import assemble, assemble_state
from site_loader.errors import InvalidTransition
from site_loader.remote.models import Chunk, ChunkStatus, LoadState


@pytest.mark.parametrize("order", list(itertools.permutations([0, 1, 2])))
def test_assembly_ignores_insertion_order(order):
    pieces = {0: b"AB", 1: b"CD", 2: b"EF"}
    shuffled = {i: pieces[i] for i in order}
    assert assemble(shuffled) == b"ABCDEF"
    assert assemble((i, pieces[i]) for i in order) == b"ABCDEF"


def test_assembly_length_is_sum_of_payloads():
    pieces = [(4, b"x" * 7), (1, b""), (2, b"yy")]
    assert assemble(pieces) == b"yy" + b"x" * 7


def test_duplicate_index_is_rejected():
    with pytest.raises(ValueError):
        assemble([(0, b"a"), (0, b"b")])


def _state(statuses):
    state = LoadState(total=len(statuses))
    for index, ok in enumerate(statuses):
        state.add_leaf(Chunk(index=index, address=addr(index)))
        state.mark_loading(index)
        if ok:
            state.mark_loaded(index, bytes([65 + index]) * 2)
        else:
            state.mark_failed(index)
    return state


def test_assemble_state_reports_missing_chunks():
    assembly = assemble_state(_state([True, False, True, False]), expected_size=8)

    assert assembly.data == b"AACC"
    assert assembly.missing == [1, 3]
    assert assembly.chunk_count == 2
    assert not assembly.complete
    assert assembly.shortfall == 4


def test_complete_assembly_may_exceed_advisory_size():
    assembly = assemble_state(_state([True, True]), expected_size=1)
    assert assembly.complete
    assert assembly.shortfall == 0


# --------------------------------------------------------------------------- #
#                             Chunk status machine                             #
# --------------------------------------------------------------------------- #


def test_chunk_status_advances_forward():
    chunk = Chunk(index=0, address=addr(1))
    for status in (ChunkStatus.SCANNED, ChunkStatus.LOADING, ChunkStatus.FAILED,
                   ChunkStatus.LOADING, ChunkStatus.LOADED):
        chunk.advance(status)
    assert chunk.status is ChunkStatus.LOADED


@pytest.mark.parametrize(
    "path",
    [
        [ChunkStatus.LOADING],
        [ChunkStatus.SCANNED, ChunkStatus.LOADED],
        [ChunkStatus.SCANNED, ChunkStatus.LOADING, ChunkStatus.LOADED, ChunkStatus.LOADING],
    ],
)
def test_chunk_status_rejects_illegal_moves(path):
    chunk = Chunk(index=3, address=addr(1))
    with pytest.raises(InvalidTransition):
        for status in path:
            chunk.advance(status)


def test_load_state_counts_and_duplicate_leaf():
    state = _state([True, False, True])
    assert (state.scanned, state.loaded, state.failed) == (3, 2, 1)
    assert state.bytes_loaded == 4
    with pytest.raises(ValueError):
        state.add_leaf(Chunk(index=1, address=addr(9)))
