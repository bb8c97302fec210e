"""
Unit tests for TournamentRegistry class.
Tests: create_tournament, get_tournament, list_tournaments, update_tournament,
       append_round, delete_tournament, get_statistics
"""
from datetime import date

import pytest
from sqlalchemy.orm.exc import StaleDataError

from dashboard.models import db, Tournament
from dashboard.tournament_registry import (
    ConcurrentUpdateError,
    CorruptTournamentInfo,
    TournamentNotFound,
    TournamentRegistry,
)
from scoring.payload import (
    InvalidPayload,
    RoundAppendError,
    RoundRecord,
    TournamentCategory,
    TournamentPayload,
)


def next_round(index, players=(1, 2, 3, 4), games=None):
    players = list(players)
    return RoundRecord(
        round=index,
        players=players,
        games=games if games is not None else [[1000 * (i + 1) for i in range(len(players))]]
    )


class TestCreateTournament:
    """Tests for create_tournament method."""

    def test_create_without_payload(self, app, db_session):
        """Should create a tournament whose info is empty."""
        registry = TournamentRegistry()
        tournament = registry.create_tournament(
            title="Autumn Qiaoma Open",
            category=TournamentCategory.QIAOMA,
            tournament_date=date(2025, 10, 1)
        )

        assert tournament.id is not None
        assert tournament.title == "Autumn Qiaoma Open"
        assert tournament.category == "qiaoma"
        assert tournament.info is None
        assert tournament.payload is None

    def test_create_with_players(self, app, db_session):
        """Should store the payload with no rounds yet."""
        registry = TournamentRegistry()
        tournament = registry.create_tournament(
            title="Riichi League",
            category=TournamentCategory.RIICHI,
            tournament_date=date(2025, 5, 20),
            payload=TournamentPayload(players=[1, 2, 3, 4, 5])
        )

        assert tournament.info == {'players': [1, 2, 3, 4, 5], 'round_number': 5, 'rounds': []}

    def test_create_accepts_category_string(self, app, db_session):
        registry = TournamentRegistry()
        tournament = registry.create_tournament("Cup", "riichi", date(2025, 1, 1))
        assert tournament.category == "riichi"

    def test_create_rejects_invalid_category(self, app, db_session):
        registry = TournamentRegistry()
        with pytest.raises(ValueError):
            registry.create_tournament("Cup", "poker", date(2025, 1, 1))

    def test_create_rejects_wrong_player_count(self, app, db_session):
        registry = TournamentRegistry()
        with pytest.raises(InvalidPayload):
            registry.create_tournament(
                "Cup", TournamentCategory.RIICHI, date(2025, 1, 1),
                payload=TournamentPayload(players=[1, 2, 3])
            )
        assert Tournament.query.count() == 0

    def test_create_rejects_recorded_rounds(self, app, db_session):
        registry = TournamentRegistry()
        payload = TournamentPayload(players=[1, 2, 3, 4], rounds=[next_round(1)])
        with pytest.raises(InvalidPayload):
            registry.create_tournament("Cup", TournamentCategory.RIICHI, date(2025, 1, 1), payload)


class TestGetAndList:
    """Tests for get_tournament and list_tournaments."""

    def test_get_existing(self, app, db_session, sample_tournament):
        registry = TournamentRegistry()
        tournament = registry.get_tournament(sample_tournament.id)
        assert tournament.title == 'Spring Riichi Cup'

    def test_get_missing(self, app, db_session):
        assert TournamentRegistry().get_tournament(999) is None

    def test_list_newest_date_first(self, app, db_session):
        registry = TournamentRegistry()
        for day in (3, 1, 2):
            registry.create_tournament(f"Day {day}", TournamentCategory.QIAOMA, date(2025, 1, day))

        titles = [t.title for t in registry.list_tournaments()]
        assert titles == ["Day 3", "Day 2", "Day 1"]


class TestUpdateTournament:
    """Tests for update_tournament method."""

    def test_update_fields(self, app, db_session, sample_tournament):
        registry = TournamentRegistry()
        tournament = registry.update_tournament(
            sample_tournament.id,
            title="Renamed Cup",
            category=TournamentCategory.QIAOMA,
            tournament_date=date(2025, 4, 1),
            payload=TournamentPayload(players=[1, 2, 3, 4], rounds=[next_round(1)])
        )

        assert tournament.title == "Renamed Cup"
        assert tournament.category == "qiaoma"
        assert tournament.date == date(2025, 4, 1)
        assert tournament.payload.completed_rounds == 1

    def test_update_bumps_version(self, app, db_session, sample_tournament):
        registry = TournamentRegistry()
        before = registry.get_tournament(sample_tournament.id).version_id
        tournament = registry.update_tournament(
            sample_tournament.id, "Cup", TournamentCategory.RIICHI, date(2025, 1, 1)
        )
        assert tournament.version_id == before + 1

    def test_update_missing(self, app, db_session):
        with pytest.raises(TournamentNotFound):
            TournamentRegistry().update_tournament(
                42, "Cup", TournamentCategory.RIICHI, date(2025, 1, 1)
            )

    def test_update_rejects_out_of_order_rounds(self, app, db_session, sample_tournament):
        payload = TournamentPayload(players=[1, 2, 3, 4], rounds=[next_round(2)])
        with pytest.raises(InvalidPayload):
            TournamentRegistry().update_tournament(
                sample_tournament.id, "Cup", TournamentCategory.RIICHI, date(2025, 1, 1), payload
            )


class TestAppendRound:
    """Tests for append_round method."""

    def test_append_first_round(self, app, db_session, sample_tournament):
        registry = TournamentRegistry()
        players = sample_tournament.info['players']

        tournament = registry.append_round(sample_tournament.id, next_round(1, players))

        assert tournament.payload.completed_rounds == 1
        stored = db.session.get(Tournament, sample_tournament.id)
        assert stored.info['rounds'][0]['round'] == 1
        assert stored.info['rounds'][0]['players'] == players

    def test_append_in_sequence(self, app, db_session, sample_tournament):
        registry = TournamentRegistry()
        players = sample_tournament.info['players']

        for index in range(1, 6):
            tournament = registry.append_round(sample_tournament.id, next_round(index, players))

        assert tournament.payload.completed_rounds == 5
        assert tournament.payload.is_completed

    def test_append_rejects_skipped_round(self, app, db_session, sample_tournament):
        registry = TournamentRegistry()
        players = sample_tournament.info['players']

        with pytest.raises(RoundAppendError) as exc:
            registry.append_round(sample_tournament.id, next_round(2, players))
        assert exc.value.expected_round == 1

        stored = db.session.get(Tournament, sample_tournament.id)
        assert stored.info['rounds'] == []

    def test_append_rejects_beyond_planned_rounds(self, app, db_session, sample_tournament):
        registry = TournamentRegistry()
        players = sample_tournament.info['players']
        for index in range(1, 6):
            registry.append_round(sample_tournament.id, next_round(index, players))

        with pytest.raises(RoundAppendError):
            registry.append_round(sample_tournament.id, next_round(6, players))

    def test_append_rejects_unregistered_player(self, app, db_session, sample_tournament):
        players = sample_tournament.info['players']
        outsider = max(players) + 100
        with pytest.raises(RoundAppendError):
            TournamentRegistry().append_round(
                sample_tournament.id, next_round(1, players[:3] + [outsider])
            )

    def test_append_to_tournament_without_payload(self, app, db_session):
        registry = TournamentRegistry()
        tournament = registry.create_tournament("Empty", TournamentCategory.RIICHI, date(2025, 1, 1))

        with pytest.raises(RoundAppendError):
            registry.append_round(tournament.id, next_round(1))

    def test_append_to_unreadable_info(self, app, db_session):
        """Stored info that no longer parses is reported as corrupt and left alone."""
        tournament = Tournament(
            title="Broken", category="riichi", date=date(2025, 1, 1),
            info={'players': [1, 2, 3, 4], 'rounds': {}}
        )
        db.session.add(tournament)
        db.session.commit()

        with pytest.raises(CorruptTournamentInfo) as exc:
            TournamentRegistry().append_round(tournament.id, next_round(1))

        assert exc.value.tournament_id == tournament.id
        assert db.session.get(Tournament, tournament.id).info == {'players': [1, 2, 3, 4], 'rounds': {}}

    def test_append_missing_tournament(self, app, db_session):
        with pytest.raises(TournamentNotFound):
            TournamentRegistry().append_round(12345, next_round(1))

    def test_lost_race_raises_concurrent_update(self, app, db_session, sample_tournament, mocker):
        """A stale version on commit surfaces as ConcurrentUpdateError and rolls back."""
        registry = TournamentRegistry()
        players = sample_tournament.info['players']
        mocker.patch.object(db.session, 'commit', side_effect=StaleDataError("stale"))
        rollback = mocker.spy(db.session, 'rollback')

        with pytest.raises(ConcurrentUpdateError):
            registry.append_round(sample_tournament.id, next_round(1, players))

        assert rollback.called


class TestDeleteTournament:
    """Tests for delete_tournament method."""

    def test_delete_existing(self, app, db_session, sample_tournament):
        registry = TournamentRegistry()
        success, message = registry.delete_tournament(sample_tournament.id)

        assert success is True
        assert registry.get_tournament(sample_tournament.id) is None

    def test_delete_missing(self, app, db_session):
        success, message = TournamentRegistry().delete_tournament(999)
        assert success is False
        assert message == "Tournament not found"


class TestGetStatistics:
    """Tests for get_statistics method."""

    def test_statistics_use_user_names(self, app, db_session, sample_users, sample_tournament):
        registry = TournamentRegistry()
        players = sample_tournament.info['players']
        registry.append_round(sample_tournament.id, next_round(1, players, games=[[100, 400, 300, 200]]))

        stats = registry.get_statistics(registry.get_tournament(sample_tournament.id))

        assert stats.champion.user.account == 'player2'
        assert stats.champion.score == 400
        assert [p.user.nickname for p in stats.player_totals] == [
            'Player 1', 'Player 2', 'Player 3', 'Player 4'
        ]

    def test_statistics_for_example_tournament(self, app, db_session, played_tournament):
        registry = TournamentRegistry()
        stats = registry.get_statistics(registry.get_tournament(played_tournament.id))

        assert [p.score for p in stats.player_totals] == [75000, 75000, 60000, 40000]
        assert stats.champion.user.id == 1
        assert stats.champion.user.nickname == 'Unknown'

    def test_malformed_payload_gives_empty_statistics(self, app, db_session):
        tournament = Tournament(
            title="Broken", category="riichi", date=date(2025, 1, 1),
            info={'players': 'everyone'}
        )
        db.session.add(tournament)
        db.session.commit()

        stats = TournamentRegistry().get_statistics(tournament)

        assert stats.player_count == 0
        assert stats.champion is None
