from datetime import date

from flask import Blueprint, current_app, jsonify, request

from scoring.payload import RoundRecord, TournamentCategory, TournamentPayload
from dashboard.errors import ValidationError, json_object_body
from dashboard.models import Tournament
from dashboard.tournament_registry import TournamentNotFound

bp = Blueprint('tournaments', __name__, url_prefix='/api/tournaments')


def tournament_response(tournament: Tournament) -> dict:
    """Tournament record merged with its score statistics."""
    stats = current_app.registry.get_statistics(tournament)
    return {**tournament.to_dict(), **stats.to_dict()}


def parse_tournament_body(data: dict):
    title = data.get('title')
    category = data.get('category')
    date_value = data.get('date')

    if not title or not category or not date_value:
        raise ValidationError('Missing required fields', 'title, category, and date are required')

    try:
        category = TournamentCategory(category)
    except ValueError:
        choices = ' or '.join(f"'{c.value}'" for c in TournamentCategory)
        raise ValidationError('Invalid category', f'category must be either {choices}')

    try:
        tournament_date = date.fromisoformat(str(date_value)[:10])
    except ValueError:
        raise ValidationError('Invalid date', 'date must be formatted as YYYY-MM-DD')

    info = data.get('info')
    payload = TournamentPayload.from_dict(info) if info is not None else None

    return title, category, tournament_date, payload


# --- Routes ---

@bp.route('', methods=['GET'])
def list_tournaments():
    """List tournaments, newest first, with score statistics."""
    tournaments = current_app.registry.list_tournaments()
    return jsonify([tournament_response(t) for t in tournaments])


@bp.route('', methods=['POST'])
def create_tournament():
    title, category, tournament_date, payload = parse_tournament_body(json_object_body())

    tournament = current_app.registry.create_tournament(
        title=title,
        category=category,
        tournament_date=tournament_date,
        payload=payload
    )
    return jsonify(tournament_response(tournament)), 201


@bp.route('/<int:tournament_id>', methods=['GET'])
def get_tournament(tournament_id: int):
    tournament = current_app.registry.get_tournament(tournament_id)
    if not tournament:
        raise TournamentNotFound(tournament_id)
    return jsonify(tournament_response(tournament))


@bp.route('/<int:tournament_id>', methods=['PUT'])
def update_tournament(tournament_id: int):
    title, category, tournament_date, payload = parse_tournament_body(json_object_body())

    tournament = current_app.registry.update_tournament(
        tournament_id,
        title=title,
        category=category,
        tournament_date=tournament_date,
        payload=payload
    )
    return jsonify(tournament_response(tournament))


@bp.route('/<int:tournament_id>', methods=['DELETE'])
def delete_tournament(tournament_id: int):
    tournament = current_app.registry.get_tournament(tournament_id)
    if not tournament:
        raise TournamentNotFound(tournament_id)

    deleted = {'id': tournament.id, 'title': tournament.title}
    success, message = current_app.registry.delete_tournament(tournament_id)
    if not success:
        raise TournamentNotFound(tournament_id)

    return jsonify({
        'message': message,
        'deletedTournament': deleted
    })


@bp.route('/<int:tournament_id>/rounds', methods=['POST'])
def append_round(tournament_id: int):
    """Record the next round of a tournament."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Missing round', 'request body must be a round object')

    record = RoundRecord.from_dict(data)
    tournament = current_app.registry.append_round(tournament_id, record)
    return jsonify(tournament_response(tournament)), 201
