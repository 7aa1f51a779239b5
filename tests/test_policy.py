"""
Tests for policy governance: validation, decrees, proposals and votes.
"""

import pytest

from nomenklatura.errors import PolicyInvariantError
from nomenklatura.state import EventType, StatName
from nomenklatura.state.schema import (
    Faction,
    Institution,
    LawCategory,
    Personality,
    PolicyEffects,
    PolicyOption,
    PolicySlot,
)

from conftest import RiggedDice, make_manager, make_official


@pytest.fixture
def emergency_slot():
    """A political slot whose default already grants decree powers."""
    return PolicySlot(
        slot_id="test_emergency",
        name="State of Emergency",
        institution=Institution.PRESIDIUM,
        category=LawCategory.POLITICAL,
        default_option_id="martial_law",
        options=[
            PolicyOption(
                id="martial_law",
                name="Martial Law",
                effects=PolicyEffects(enables_decrees=True),
                is_default=True,
            ),
            PolicyOption(id="normal_order", name="Normal Order"),
        ],
    )


def game_with_slots(*slots, dice=None, power=0, position=1):
    game = make_manager(dice or RiggedDice(default=False), slots=False)
    game.state.policy_slots = list(slots)
    game.state.player.power_consolidation = power
    game.state.player.position_index = position
    return game


def member(id, faction, loyal=50, ambitious=50, position=7):
    return make_official(
        id=id,
        name=id.title(),
        faction=faction,
        position_index=position,
        personality=Personality(loyal=loyal, ambitious=ambitious),
    )


class TestValidation:
    """Power, rank and category gates."""

    def test_insufficient_power(self, test_slot):
        game = game_with_slots(test_slot, power=50, position=6)
        check = game.policy.validate("test_rationing", "free_markets")

        assert check.can_change is False
        assert check.power_required == 70
        assert "70" in check.reason
        assert "you have 50" in check.reason

    def test_category_difficulty_sets_floor(self, test_slot):
        test_slot.options[1].minimum_power_required = 10
        game = game_with_slots(test_slot, power=100, position=6)
        assert game.policy.validate("test_rationing", "free_markets").power_required == 40

    def test_sufficient_power_and_rank(self, test_slot):
        game = game_with_slots(test_slot, power=70, position=5)
        check = game.policy.validate("test_rationing", "free_markets")
        assert check.can_change
        assert check.reason is None
        assert check.decree_power_required == 90

    def test_rank_required(self, test_slot):
        game = game_with_slots(test_slot, power=90, position=4)
        check = game.policy.validate("test_rationing", "free_markets")
        assert not check.can_change
        assert "position 5" in check.reason

    def test_current_option_rejected(self, test_slot):
        game = game_with_slots(test_slot, power=100, position=8)
        assert not game.policy.validate("test_rationing", "ration_cards").can_change

    def test_unknown_slot_or_option_raises(self, test_slot):
        game = game_with_slots(test_slot)
        with pytest.raises(PolicyInvariantError):
            game.policy.validate("no_such_slot", "free_markets")
        with pytest.raises(PolicyInvariantError):
            game.policy.validate("test_rationing", "no_such_option")

    def test_institutional_needs_standing_committee(self):
        game = make_manager(RiggedDice())
        game.state.player.power_consolidation = 100
        game.state.player.position_index = 6
        check = game.policy.validate("presidium_leadership_selection", "leadership_factional_rotation")
        assert not check.can_change
        assert "Standing Committee" in check.reason


class TestDecrees:
    """Immediate changes that bypass the committee."""

    def test_institutional_never_by_decree(self):
        game = make_manager(RiggedDice())
        game.policy.get_slot("congress_session_frequency").current_option_id = "session_gs_calls"
        game.state.player.power_consolidation = 100
        game.state.player.position_index = 8
        assert game.policy.decrees_enabled

        check = game.policy.validate(
            "presidium_emergency_powers", "emergency_gs_unilateral", as_decree=True,
        )
        assert check.can_change is False
        assert check.can_decree is False
        assert "cannot be changed by decree" in check.reason

        result = game.policy.change_policy(
            "presidium_emergency_powers", "emergency_gs_unilateral", as_decree=True,
        )
        assert not result.success
        assert game.policy.get_slot("presidium_emergency_powers").current_option_id == "emergency_presidium_approval"

    def test_decree_needs_decree_powers(self, test_slot):
        game = game_with_slots(test_slot, power=100, position=8)
        check = game.policy.validate("test_rationing", "free_markets", as_decree=True)
        assert not check.can_change
        assert check.reason == "Decree powers are not in force"

    def test_decree_needs_premium_power(self, test_slot, emergency_slot):
        game = game_with_slots(test_slot, emergency_slot, power=80, position=8)
        check = game.policy.validate("test_rationing", "free_markets", as_decree=True)
        assert not check.can_change
        assert "90" in check.reason

    def test_decree_swaps_immediately(self, test_slot, emergency_slot):
        game = game_with_slots(test_slot, emergency_slot, power=100, position=8)
        result = game.policy.change_policy("test_rationing", "free_markets", as_decree=True)

        assert result.success
        assert result.was_decreed
        slot = game.policy.get_slot("test_rationing")
        assert slot.current_option_id == "free_markets"
        assert slot.has_been_modified
        assert slot.was_current_policy_decreed
        assert not slot.has_pending_proposal
        assert game.state.player.laws_modified_count == 1

        # Old effects removed, new ones applied, elite resent the decree
        assert game.ledger[StatName.FOOD_SUPPLY] == 60
        assert game.ledger[StatName.STABILITY] == 45
        assert game.ledger[StatName.ELITE_LOYALTY] == 45
        assert "The Presidium resents being bypassed" in result.consequences
        assert game.bus.get_history(EventType.POLICY_DECREED)[-1].data["option_id"] == "free_markets"

    def test_decree_against_own_faction(self, test_slot, emergency_slot):
        game = game_with_slots(test_slot, emergency_slot, dice=RiggedDice(default=True), power=100, position=8)
        game.state.player.faction = Faction.OLD_GUARD
        result = game.policy.change_policy("test_rationing", "free_markets", as_decree=True)

        assert "Your own faction feels betrayed" in result.consequences
        assert "Unrest in the provinces" in result.consequences
        assert game.ledger[StatName.PATRON_FAVOR] == 45
        assert game.ledger[StatName.STABILITY] == 40

    def test_return_to_default_keeps_modified_flag(self, test_slot, emergency_slot):
        game = game_with_slots(test_slot, emergency_slot, power=100, position=8)
        game.policy.change_policy("test_rationing", "free_markets", as_decree=True)
        game.policy.change_policy("test_rationing", "ration_cards", as_decree=True)

        slot = game.policy.get_slot("test_rationing")
        assert slot.current_option_id == "ration_cards"
        assert slot.has_been_modified
        assert game.state.player.laws_modified_count == 1
        assert [r.to_option_id for r in slot.change_history] == ["free_markets", "ration_cards"]


class TestProposals:
    """Proposals wait for a committee vote."""

    def test_proposal_is_pending(self, test_slot):
        game = game_with_slots(test_slot, power=80, position=6)
        result = game.policy.change_policy("test_rationing", "free_markets")

        assert result.success
        assert result.is_pending
        slot = game.policy.get_slot("test_rationing")
        assert slot.current_option_id == "ration_cards"
        assert slot.pending_option_id == "free_markets"
        assert slot.pending_proposed_by == "player"
        assert slot.pending_proposed_turn == 1

        again = game.policy.validate("test_rationing", "free_markets")
        assert not again.can_change
        assert "already pending" in again.reason

    def test_committee_adopts(self, test_slot):
        game = game_with_slots(test_slot, power=80, position=6)
        game.add_character(member("reformer_a", Faction.REFORMISTS, loyal=70))
        game.add_character(member("reformer_b", Faction.REFORMISTS, loyal=70))
        game.add_character(member("clerk", Faction.OLD_GUARD, position=3))

        game.policy.change_policy("test_rationing", "free_markets")
        result = game.policy.resolve_pending("test_rationing")

        assert result.success
        assert result.tally.votes_for == 2
        assert "clerk" not in result.tally.votes
        slot = game.policy.get_slot("test_rationing")
        assert slot.current_option_id == "free_markets"
        assert not slot.was_current_policy_decreed
        assert game.ledger[StatName.FOOD_SUPPLY] == 60

    def test_committee_rejects(self, test_slot):
        game = game_with_slots(test_slot, power=80, position=6)
        game.add_character(member("hardliner_a", Faction.OLD_GUARD, loyal=40))
        game.add_character(member("hardliner_b", Faction.OLD_GUARD, loyal=40))

        game.policy.change_policy("test_rationing", "free_markets")
        result = game.policy.resolve_pending("test_rationing")

        assert not result.success
        assert result.tally.votes_against == 2
        slot = game.policy.get_slot("test_rationing")
        assert slot.current_option_id == "ration_cards"
        assert not slot.has_pending_proposal
        assert game.ledger[StatName.FOOD_SUPPLY] == 50

    def test_empty_committee_rejects(self, test_slot):
        game = game_with_slots(test_slot, power=80, position=6)
        game.policy.change_policy("test_rationing", "free_markets")
        assert not game.policy.resolve_pending("test_rationing").success

    def test_character_proposal_skips_player_gates(self, test_slot):
        game = game_with_slots(test_slot, power=0, position=1)
        result = game.policy.change_policy(
            "test_rationing", "free_markets", by_character_id="orlova", by_player=False,
        )
        assert result.is_pending
        assert game.policy.get_slot("test_rationing").pending_proposed_by == "orlova"

    def test_resolve_without_proposal(self, test_slot):
        game = game_with_slots(test_slot)
        assert not game.policy.resolve_pending("test_rationing").success

    def test_resolve_all_pending(self, test_slot, emergency_slot):
        game = game_with_slots(test_slot, emergency_slot, power=80, position=6)
        game.policy.change_policy("test_rationing", "free_markets")
        game.policy.change_policy("test_emergency", "normal_order")
        results = game.policy.resolve_all_pending()
        assert [r.slot_id for r in results] == ["test_rationing", "test_emergency"]
        assert all(not s.has_pending_proposal for s in game.policy.slots)


class TestFactionStanding:
    """Policies in force move the player's standing with each faction."""

    def test_decree_moves_faction_standing(self, test_slot, emergency_slot):
        game = game_with_slots(test_slot, emergency_slot, power=100, position=8)
        result = game.policy.change_policy("test_rationing", "free_markets", as_decree=True)

        assert game.ledger.standing(Faction.OLD_GUARD) == 40
        assert game.ledger.standing(Faction.REFORMISTS) == 65
        assert game.state.faction_standing[Faction.REFORMISTS] == 65
        assert {c.faction: c.delta for c in result.faction_changes} == {
            Faction.OLD_GUARD: -10,
            Faction.REFORMISTS: 15,
        }
        events = game.bus.get_history(EventType.FACTION_STANDING_CHANGED)
        assert {e.data["faction"] for e in events} == {"old_guard", "reformists"}

    def test_adopted_proposal_moves_faction_standing(self, test_slot):
        game = game_with_slots(test_slot, power=80, position=6)
        game.add_character(member("reformer_a", Faction.REFORMISTS, loyal=70))
        game.add_character(member("reformer_b", Faction.REFORMISTS, loyal=70))

        game.policy.change_policy("test_rationing", "free_markets")
        result = game.policy.resolve_pending("test_rationing")

        assert result.success
        assert game.ledger.standing(Faction.REFORMISTS) == 65
        assert len(result.faction_changes) == 2

    def test_rejected_proposal_leaves_standing(self, test_slot):
        game = game_with_slots(test_slot, power=80, position=6)
        game.policy.change_policy("test_rationing", "free_markets")
        result = game.policy.resolve_pending("test_rationing")

        assert not result.success
        assert result.faction_changes == []
        assert all(value == 50 for value in game.state.faction_standing.values())

    def test_standing_is_clamped(self, test_slot, emergency_slot):
        game = game_with_slots(test_slot, emergency_slot, power=100, position=8)
        game.state.faction_standing[Faction.REFORMISTS] = 95
        game.policy.change_policy("test_rationing", "free_markets", as_decree=True)
        assert game.ledger.standing(Faction.REFORMISTS) == 100


class TestAggregates:
    """Views over the policies in force."""

    def test_default_slots_have_no_decree_powers(self):
        game = make_manager(RiggedDice())
        assert not game.policy.decrees_enabled
        assert not game.policy.purges_enabled
        assert game.policy.modified_slots() == []

    def test_purges_follow_surveillance_policy(self):
        game = make_manager(RiggedDice())
        game.policy.get_slot("security_surveillance_scope").current_option_id = "surveillance_elite_focus"
        assert game.policy.purges_enabled

    def test_aggregated_effects(self, test_slot):
        game = game_with_slots(test_slot)
        assert game.policy.aggregated_effects() == {StatName.FOOD_SUPPLY: 5}
        assert game.policy.aggregated_faction_effects() == {Faction.OLD_GUARD: 10}

    def test_dangling_current_option_is_a_defect(self, test_slot):
        game = game_with_slots(test_slot)
        test_slot.current_option_id = "abolished"
        with pytest.raises(PolicyInvariantError):
            game.policy.current_options()
