from flask import Blueprint

scaling_bp = Blueprint('scaling', __name__, url_prefix='/api')

from . import routes  # noqa: E402,F401
