"""
Authentication and profile routes (JSON).
"""
from flask import Blueprint, jsonify
from flask_login import login_user, logout_user
from flask_wtf.csrf import generate_csrf

from database import db
from models.user import User
from routes.common import json_body
from services import accounts
from services.errors import AuthenticationRequired
from services.principal import require_principal
from services.rate_limit import rate_limited

auth_bp = Blueprint('auth', __name__)
profile_bp = Blueprint('profile', __name__)


@auth_bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    """Token clients echo back in the X-CSRFToken header on mutating requests."""
    return jsonify({'csrfToken': generate_csrf()})


@auth_bp.route('/register', methods=['POST'])
@rate_limited('auth')
def register():
    body = json_body()
    user = accounts.register_user(body.get('email'), body.get('password'), body.get('name'))
    return jsonify({
        'success': True,
        'user': user.to_dict(),
        'message': 'Account created. An admin will review it shortly.',
    }), 201


@auth_bp.route('/login', methods=['POST'])
@rate_limited('auth')
def login():
    body = json_body()
    email = (body.get('email') or '').strip().lower() if isinstance(body.get('email'), str) else ''
    password = body.get('password') if isinstance(body.get('password'), str) else ''

    user = User.query.filter_by(email=email).first() if email else None
    if user is None or not user.check_password(password):
        raise AuthenticationRequired('Invalid email or password.')

    login_user(user, remember=bool(body.get('remember')))
    return jsonify({'success': True, 'user': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    require_principal()
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/me', methods=['GET'])
def me():
    principal = require_principal()
    user = db.session.get(User, principal.id)
    return jsonify({'success': True, 'user': user.to_dict()})


@profile_bp.route('/profile', methods=['PATCH'])
@rate_limited('mutation')
def update_profile():
    principal = require_principal()
    body = json_body()
    user = accounts.set_gamertag(principal, body.get('gamertag'))
    return jsonify({'success': True, 'user': user.to_dict()})
