"""
Tests for the power-up economy and timed board effects.
"""

from ..engine_core.powerups import (
    BoardEffects,
    EconomyState,
    PowerUpType,
    freeze_tile,
    grant_for_level,
    tick_effects,
    tick_frozen_tiles,
)
from .conftest import ScriptedRandom, power_up


class TestEconomyState:
    """Tests for the inventory and undo counters."""

    def test_add_until_full(self):
        economy = EconomyState()
        for i in range(6):
            economy = economy.with_added(power_up(PowerUpType.SWAP, str(i)), max_power_ups=4)

        assert len(economy.inventory) == 4
        assert not economy.has_slot(4)

    def test_undo_grants_are_counted(self):
        """Only Undo power-ups raise the lifetime counter."""
        economy = EconomyState()
        economy = economy.with_added(power_up(PowerUpType.UNDO, "a"))
        economy = economy.with_added(power_up(PowerUpType.FREEZE, "b"))
        economy = economy.with_added(power_up(PowerUpType.UNDO, "c"))

        assert economy.spawned_undos == 2

    def test_counter_survives_removal(self):
        economy = EconomyState().with_added(power_up(PowerUpType.UNDO))

        economy = economy.without(economy.inventory[0].id)

        assert economy.inventory == ()
        assert economy.spawned_undos == 1

    def test_find(self):
        p = power_up(PowerUpType.DELETE)
        economy = EconomyState().with_added(p)

        assert economy.find(p.id) == p
        assert economy.find("powerup_missing") is None


class TestBoardEffects:
    """Tests for freeze countdowns and slow motion."""

    def test_freeze_is_additive(self):
        frozen = freeze_tile({}, 5, turns=3)
        frozen = freeze_tile(frozen, 5, turns=3)

        assert frozen == {5: 6}

    def test_tick_drops_expired(self):
        assert tick_frozen_tiles({1: 3, 2: 1}) == {1: 2}

    def test_zero_entries_never_stored(self):
        effects = BoardEffects(frozen_tiles={1: 0, 2: -1, 3: 2})

        assert effects.frozen_tiles == {3: 2}
        assert not effects.is_frozen(1)
        assert effects.freeze_remaining(3) == 2

    def test_tick_effects(self):
        effects = BoardEffects(frozen_tiles={1: 1}, slow_motion_turns=1)

        effects = tick_effects(effects)

        assert effects.frozen_tiles == {}
        assert effects.slow_motion_turns == 0
        assert not effects.slow_motion_active

        assert tick_effects(effects).slow_motion_turns == 0


class TestGeneration:
    """Tests for granting power-ups on new highest ranks."""

    def test_new_rank_grants(self):
        grant = grant_for_level(
            EconomyState(), BoardEffects(), previous_highest=2, current_highest=3,
            rng=ScriptedRandom(),
        )

        assert grant.power_up is not None
        assert grant.power_up.type == PowerUpType.FREEZE
        assert grant.economy.inventory == (grant.power_up,)
        assert grant.effects.generated_levels == frozenset({3})
        assert grant.highest_level == 3

    def test_same_rank_does_not_grant(self):
        grant = grant_for_level(
            EconomyState(), BoardEffects(), previous_highest=3, current_highest=3,
            rng=ScriptedRandom(),
        )

        assert grant.power_up is None

    def test_highest_never_decreases(self):
        grant = grant_for_level(
            EconomyState(), BoardEffects(), previous_highest=5, current_highest=2,
            rng=ScriptedRandom(),
        )

        assert grant.highest_level == 5

    def test_rank_pays_out_once(self):
        effects = BoardEffects(generated_levels=frozenset({4}))

        grant = grant_for_level(
            EconomyState(), effects, previous_highest=3, current_highest=4,
            rng=ScriptedRandom(),
        )

        assert grant.power_up is None
        assert grant.highest_level == 4

    def test_full_inventory_forfeits_grant(self):
        """No slot: no grant, and the rank is not recorded as paid out."""
        economy = EconomyState()
        for i in range(4):
            economy = economy.with_added(power_up(PowerUpType.SWAP, str(i)))

        grant = grant_for_level(
            economy, BoardEffects(), previous_highest=3, current_highest=4,
            rng=ScriptedRandom(),
        )

        assert grant.power_up is None
        assert grant.economy is economy
        assert 4 not in grant.effects.generated_levels
        assert grant.highest_level == 4
