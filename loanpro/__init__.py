import urllib.parse

from flask import Flask, jsonify

from .config import Config


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Register blueprints
    from .finance import finance_bp
    from .applications import applications_bp
    from .credit import credit_bp
    from .disbursement import disbursement_bp
    from .accounting import accounting_bp
    from .reports import admin_api_bp
    from .core import core_bp

    app.register_blueprint(finance_bp)
    app.register_blueprint(applications_bp)
    app.register_blueprint(credit_bp)
    app.register_blueprint(disbursement_bp)
    app.register_blueprint(accounting_bp)
    app.register_blueprint(admin_api_bp)
    app.register_blueprint(core_bp)

    @app.errorhandler(404)
    def not_found(_e):
        return jsonify({"status": "error", "message": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(_e):
        return jsonify({"status": "error", "message": "Method not allowed"}), 405

    @app.errorhandler(500)
    def server_error(e):
        app.logger.error(f"Unhandled error: {e}")
        return jsonify({"status": "error", "message": "Internal server error"}), 500

    from .cli import register_cli
    register_cli(app)

    return app


def list_routes(app):
    """Return all registered routes with their endpoint and methods, sorted."""
    output = []
    for rule in app.url_map.iter_rules():
        methods = ','.join(sorted(rule.methods - {"HEAD", "OPTIONS"}))
        output.append(urllib.parse.unquote(f"{rule.endpoint:35s} {methods:20s} {rule}"))
    return sorted(output)
