from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from minigame import db
from minigame.models import Player

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Minigame score server'})


@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    player = Player.query.filter_by(username=data.get('username')).first()
    if player and player.check_password(data.get('password') or ''):
        login_user(player, remember=True)
        return jsonify({"success": True, "player": player.to_dict()})
    return jsonify({"success": False, "message": "Invalid credentials"}), 401


@main.route('/register', methods=['POST', 'OPTIONS'])
def register():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    username = data.get('username')
    password = data.get('password')
    if not username or not password:
        return jsonify({"success": False, "message": "Username and password are required"}), 400
    if Player.query.filter_by(username=username).first():
        return jsonify({"success": False, "message": "Username already exists"}), 400

    new_player = Player(username=username, display_name=data.get('display_name') or username)
    new_player.set_password(password)
    db.session.add(new_player)
    db.session.commit()
    login_user(new_player)
    return jsonify({"success": True, "player": new_player.to_dict()}), 201


@main.route('/check_login', methods=['GET'])
@login_required
def check_login():
    return jsonify({"success": True, "player": current_user.to_dict()})


@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})
