"""
Tests for status lifecycle rules as pure functions.
"""

import pytest

from nomenklatura.errors import InvalidTransition
from nomenklatura.rules import (
    VALID_TRANSITIONS,
    can_rehabilitate,
    can_transition,
    check_transition,
    return_probability,
)
from nomenklatura.rules.status import DENUNCIATION_OUTCOMES
from nomenklatura.state.schema import CharacterStatus, Personality

from conftest import make_official

S = CharacterStatus


class TestTransitionTable:
    """The table covers every status and matches the lifecycle."""

    def test_every_status_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == set(CharacterStatus)

    @pytest.mark.parametrize("terminal", [S.EXECUTED, S.DEAD])
    def test_terminal_states_have_no_exits(self, terminal):
        assert VALID_TRANSITIONS[terminal] == set()
        assert terminal.is_terminal
        for target in CharacterStatus:
            assert not can_transition(terminal, target)

    def test_active_entry_points(self):
        assert can_transition(S.ACTIVE, S.UNDER_INVESTIGATION)
        assert can_transition(S.ACTIVE, S.DETAINED)
        assert not can_transition(S.ACTIVE, S.EXECUTED)

    @pytest.mark.parametrize("source", [S.UNDER_INVESTIGATION, S.DETAINED])
    def test_open_cases_reach_every_denunciation_outcome(self, source):
        for outcome in DENUNCIATION_OUTCOMES:
            assert can_transition(source, outcome)

    @pytest.mark.parametrize("source", [S.IMPRISONED, S.EXILED, S.DISAPPEARED])
    def test_fallen_return_only_through_rehabilitation(self, source):
        assert VALID_TRANSITIONS[source] == {S.REHABILITATED}

    def test_rehabilitated_returns_to_active(self):
        assert VALID_TRANSITIONS[S.REHABILITATED] == {S.ACTIVE}

    def test_check_transition_raises(self):
        with pytest.raises(InvalidTransition, match="executed to active"):
            check_transition(S.EXECUTED, S.ACTIVE)


class TestDerivedPredicates:
    """Status helpers used by gating."""

    def test_rehabilitated_counts_as_active(self):
        assert S.REHABILITATED.is_active
        assert S.ACTIVE.is_active
        assert not S.DETAINED.is_active

    def test_display_text(self):
        assert S.UNDER_INVESTIGATION.display_text == "Under Investigation"
        assert S.DEAD.display_text == "Deceased"

    def test_can_rehabilitate(self):
        assert can_rehabilitate(make_official(status=S.EXILED))
        assert not can_rehabilitate(make_official(status=S.EXECUTED))
        assert not can_rehabilitate(make_official(status=S.ACTIVE))


class TestReturnProbability:
    """Disappeared officials resurface by competence, protection and rank."""

    def test_protected_senior_official_capped(self):
        character = make_official(
            personality=Personality(competent=100),
            has_protection=True,
            position_index=10,
        )
        assert return_probability(character) == 90

    def test_unknown_rank_counts_as_zero(self):
        character = make_official(personality=Personality(competent=50), position_index=None)
        assert return_probability(character) == 20
