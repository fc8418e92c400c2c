from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    router = current_app.extensions['buzzin']
    return jsonify({
        'message': 'Welcome to the Buzz-In Live server!',
        'rooms': len(router.store.codes()),
    })
