"""
Tests for the move resolver and tile spawner.

Tests:
- Sliding in all four directions
- Merge rules (one merge per tile, Jokers, frozen walls)
- No-op detection
- Settling, conservation and frozen properties over many boards
- Spawn placement and level weights
"""

from random import Random

import pytest

from ..config import JOKER_LEVEL, SpawnWeights
from ..engine_core.grid import CellRef, Direction, Grid, Tile
from ..engine_core.resolver import TileSpawner, can_merge, resolve
from .conftest import ScriptedRandom


J = JOKER_LEVEL
_ = None


def row_grid(row):
    """4x4 grid with `row` on top and nothing else."""
    return Grid.from_levels([row, [_] * 4, [_] * 4, [_] * 4])


class TestSlide:
    """Tests for tiles sliding into empty cells."""

    def test_slide_left(self):
        """A lone tile slides to the leading edge."""
        result = resolve(row_grid([_, _, _, 1]), Direction.LEFT)

        assert result.moved
        assert not result.merged
        assert result.grid.to_levels()[0] == [1, _, _, _]

    def test_slide_right(self):
        result = resolve(row_grid([1, _, 2, _]), "right")

        assert result.grid.to_levels()[0] == [_, _, 1, 2]

    def test_slide_up_and_down(self):
        """Columns move as lines too."""
        grid = Grid.from_levels([
            [_, _, _, _],
            [_, _, _, _],
            [3, _, _, _],
            [_, _, _, _],
        ])

        assert resolve(grid, Direction.UP).grid.to_levels()[0][0] == 3
        assert resolve(grid, Direction.DOWN).grid.to_levels()[3][0] == 3

    def test_tile_ids_follow_tiles(self):
        """A slid tile keeps its identity."""
        grid = row_grid([_, _, _, 4])
        tile_id = grid.get(CellRef(0, 3)).id

        result = resolve(grid, Direction.LEFT)

        assert result.grid.locate(tile_id) == CellRef(0, 0)

    def test_no_op_move(self):
        """Nothing can move: the input grid comes back untouched."""
        grid = row_grid([1, 2, _, _])

        result = resolve(grid, Direction.LEFT)

        assert not result.moved
        assert result.grid is grid
        assert result.score_delta == 0


class TestMerge:
    """Tests for merge rules."""

    def test_identical_tiles_merge(self):
        """Two level-1 tiles become one level-2 tile worth 2**2 points."""
        result = resolve(row_grid([1, 1, _, _]), Direction.LEFT)

        assert result.merged
        assert result.grid.to_levels()[0] == [2, _, _, _]
        assert result.score_delta == 4
        assert len(result.merge_events) == 1

    def test_leading_tile_survives_merge(self):
        """The tile nearer the edge keeps its id."""
        grid = row_grid([1, 1, _, _])
        leading_id = grid.get(CellRef(0, 0)).id

        result = resolve(grid, Direction.LEFT)

        merged = result.grid.get(CellRef(0, 0))
        assert merged.id == leading_id
        assert merged.just_merged

    def test_one_merge_per_tile(self):
        """A freshly merged tile does not merge again in the same move."""
        result = resolve(row_grid([1, 1, 1, _]), Direction.LEFT)

        assert result.grid.to_levels()[0] == [2, 1, _, _]

    def test_two_pairs_merge(self):
        result = resolve(row_grid([1, 1, 2, 2]), Direction.LEFT)

        assert result.grid.to_levels()[0] == [2, 3, _, _]
        assert result.score_delta == 4 + 8

    def test_different_levels_do_not_merge(self):
        result = resolve(row_grid([_, 1, _, 2]), Direction.LEFT)

        assert result.grid.to_levels()[0] == [1, 2, _, _]
        assert not result.merged

    def test_merge_flags_cleared_next_move(self):
        """Per-move flags are reset at the start of every resolution."""
        first = resolve(row_grid([1, 1, _, _]), Direction.LEFT)
        second = resolve(first.grid, Direction.RIGHT)

        tile = second.grid.get(CellRef(0, 3))
        assert not tile.merged
        assert not tile.just_merged


class TestJoker:
    """Tests for the wild Joker tile."""

    def test_joker_absorbs_tile_ahead(self):
        """A tile sliding into a Joker becomes its level + 1."""
        result = resolve(row_grid([J, 3, _, _]), Direction.LEFT)

        assert result.grid.to_levels()[0] == [4, _, _, _]
        assert result.score_delta == 16
        assert result.merge_events[0].is_joker

    def test_joker_slides_into_tile(self):
        result = resolve(row_grid([3, J, _, _]), Direction.LEFT)

        assert result.grid.to_levels()[0] == [4, _, _, _]
        assert result.merge_events[0].is_joker

    def test_two_jokers_never_merge(self):
        result = resolve(row_grid([J, J, _, _]), Direction.LEFT)

        assert not result.moved

    def test_joker_result_is_not_a_joker(self):
        result = resolve(row_grid([J, 1, _, _]), Direction.LEFT)

        assert not result.grid.get(CellRef(0, 0)).is_joker

    def test_can_merge_rules(self):
        joker = Tile(id=1, level=J)
        assert can_merge(joker, Tile(id=2, level=5))
        assert not can_merge(joker, Tile(id=3, level=J))
        assert not can_merge(Tile(id=4, level=2, merged=True), Tile(id=5, level=2))


class TestFrozenTiles:
    """Tests for frozen tiles acting as walls."""

    def test_frozen_tile_does_not_move(self):
        grid = row_grid([_, _, _, 1])
        frozen_id = grid.get(CellRef(0, 3)).id

        result = resolve(grid, Direction.LEFT, {frozen_id: 2})

        assert not result.moved

    def test_frozen_tile_is_a_wall(self):
        """A tile slides up to a frozen tile and stops."""
        grid = row_grid([_, 1, _, 1])
        frozen_id = grid.get(CellRef(0, 1)).id

        result = resolve(grid, Direction.LEFT, {frozen_id: 3})

        assert result.moved
        assert not result.merged
        assert result.grid.to_levels()[0] == [_, 1, 1, _]
        assert result.grid.locate(frozen_id) == CellRef(0, 1)

    def test_frozen_tile_does_not_merge(self):
        grid = row_grid([1, 1, _, _])
        frozen_id = grid.get(CellRef(0, 0)).id

        result = resolve(grid, Direction.LEFT, {frozen_id: 1})

        assert not result.moved

    def test_expired_freeze_is_ignored(self):
        grid = row_grid([1, 1, _, _])

        result = resolve(grid, Direction.LEFT, {grid.get(CellRef(0, 0)).id: 0})

        assert result.merged


def random_levels(seed):
    rng = Random(seed)
    choices = [_, _, 1, 1, 2, 2, 3, J]
    return [[rng.choice(choices) for _col in range(4)] for _row in range(4)]


BOARDS = [
    [[1, 1, 2, 2], [3, _, 3, _], [J, 4, J, J], [5, 6, 7, 8]],
    [[2, _, _, 2], [_, 1, 1, _], [4, 4, 4, 4], [_, _, _, _]],
    [[1, 2, 3, 4], [5, 6, 7, 8], [9, 10, 11, 12], [13, 14, 15, 16]],
] + [random_levels(seed) for seed in range(12)]


class TestResolveProperties:
    """Properties that hold for every board and direction."""

    @pytest.mark.parametrize("levels", BOARDS)
    @pytest.mark.parametrize("direction", list(Direction))
    def test_settled_board_stays_settled(self, levels, direction):
        """Once nothing moves, resolving again still moves nothing."""
        grid = Grid.from_levels(levels)
        result = resolve(grid, direction)
        while result.moved:
            result = resolve(result.grid, direction)

        again = resolve(result.grid, direction)

        assert not again.moved
        assert not again.merge_events
        assert again.grid.to_levels() == result.grid.to_levels()
        assert again.grid.tile_ids() == result.grid.tile_ids()

    @pytest.mark.parametrize("levels", BOARDS)
    @pytest.mark.parametrize("direction", list(Direction))
    def test_merges_conserve_tiles_and_score(self, levels, direction):
        grid = Grid.from_levels(levels)

        result = resolve(grid, direction)

        assert result.grid.tile_count == grid.tile_count - len(result.merge_events)
        for event in result.merge_events:
            assert event.score_delta == 2 ** event.level
            assert event.level != J
        assert result.score_delta == sum(2 ** e.level for e in result.merge_events)
        assert result.merged == bool(result.merge_events)

    @pytest.mark.parametrize("seed", range(6))
    @pytest.mark.parametrize("direction", list(Direction))
    def test_frozen_tiles_stay_put(self, seed, direction):
        grid = Grid.from_levels(random_levels(seed))
        frozen = {tile.id: 2 for _cell, tile in list(grid.tiles())[::3]}

        result = resolve(grid, direction, frozen)

        for tile_id in frozen:
            assert result.grid.locate(tile_id) == grid.locate(tile_id)
            assert result.grid.get(grid.locate(tile_id)).level == grid.get(grid.locate(tile_id)).level


class TestSpawner:
    """Tests for tile spawning."""

    def test_draw_level_follows_weights(self):
        """Rolls map onto the cumulative Joker / 1 / 2 table."""
        spawner = TileSpawner(rng=ScriptedRandom(rolls=[0.0, 0.5, 0.95]))

        assert spawner.draw_level() == JOKER_LEVEL
        assert spawner.draw_level() == 1
        assert spawner.draw_level() == 2

    def test_spawn_fills_an_empty_cell(self):
        spawner = TileSpawner(rng=ScriptedRandom(cells=[1]))
        grid = row_grid([1, _, _, _])

        new_grid, tile = spawner.spawn(grid, tile_id=7)

        assert tile.id == 7
        assert tile.just_spawned
        assert new_grid.get(CellRef(0, 2)) == tile

    def test_spawn_on_full_board(self):
        spawner = TileSpawner(rng=ScriptedRandom())
        grid = Grid.from_levels([[1, 2, 3, 4]] * 4)

        new_grid, tile = spawner.spawn(grid, tile_id=99)

        assert tile is None
        assert new_grid is grid

    def test_initial_grid(self):
        """A new game starts with tiles 1 and 2; the next id is 3."""
        spawner = TileSpawner(rng=ScriptedRandom())

        grid, next_id = spawner.initial_grid()

        assert grid.tile_count == 2
        assert grid.tile_ids() == {1, 2}
        assert next_id == 3

    def test_weights_must_be_positive(self):
        with pytest.raises(ValueError):
            SpawnWeights(joker=0, level_1=0, level_2=0)
        with pytest.raises(ValueError):
            SpawnWeights(joker=-1)
