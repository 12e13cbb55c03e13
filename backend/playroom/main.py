from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the playroom relay!'})


@main.route('/health')
def health():
    directory = current_app.extensions['playroom'].directory
    return jsonify({'status': 'ok', 'rooms': len(directory)})
