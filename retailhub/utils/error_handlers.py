from flask import jsonify

from .logger import Log


# Handle PermissionError
def handle_permission_error(error):
    response = {
        "success": False,
        "error": "PermissionError",
        "message": str(error),
        "status_code": 403  # Forbidden
    }
    return jsonify(response), 403

# Handle marshmallow ValidationError raised outside flask-smorest argument parsing
def handle_validation_error(error):
    response = {
        "success": False,
        "error": "Validation Error",
        "message": error.messages,
        "status_code": 400  # Bad Request
    }
    return jsonify(response), 400

# Handle TypeError
def handle_type_error(error):
    Log.error(f"[error_handlers.py][handle_type_error] {error}", exc_info=True)
    response = {
        "success": False,
        "error": "Type Error",
        "message": str(error),
        "status_code": 400  # Bad Request
    }
    return jsonify(response), 400
