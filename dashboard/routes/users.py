from flask import Blueprint, current_app, jsonify

from dashboard.errors import ValidationError, json_object_body

bp = Blueprint('users', __name__, url_prefix='/api/users')


def _user_fields():
    data = json_object_body()
    account = data.get('account')
    nickname = data.get('nickname')

    if not account or not nickname:
        raise ValidationError('Missing required fields', 'account and nickname are required')
    return account, nickname


def _not_found(user_id: int):
    return jsonify({
        'error': 'User not found',
        'message': f'User with ID {user_id} does not exist'
    }), 404


@bp.route('', methods=['GET'])
def list_users():
    return jsonify([u.to_dict() for u in current_app.users.list_users()])


@bp.route('', methods=['POST'])
def create_user():
    account, nickname = _user_fields()
    user = current_app.users.create_user(account, nickname)
    return jsonify(user.to_dict()), 201


@bp.route('/<int:user_id>', methods=['GET'])
def get_user(user_id: int):
    user = current_app.users.get_user(user_id)
    if not user:
        return _not_found(user_id)
    return jsonify(user.to_dict())


@bp.route('/<int:user_id>', methods=['PUT'])
def update_user(user_id: int):
    account, nickname = _user_fields()
    user = current_app.users.update_user(user_id, account, nickname)
    if not user:
        return _not_found(user_id)
    return jsonify(user.to_dict())


@bp.route('/<int:user_id>', methods=['DELETE'])
def delete_user(user_id: int):
    user = current_app.users.get_user(user_id)
    if not user:
        return _not_found(user_id)

    deleted = {'id': user.id, 'account': user.account, 'nickname': user.nickname}
    success, message = current_app.users.delete_user(user_id)
    if not success:
        return _not_found(user_id)

    return jsonify({
        'message': message,
        'deletedUser': deleted
    })
