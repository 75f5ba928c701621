import logging

from flask import Flask, jsonify
from config import Config
from app.extensions import db, login_manager, migrate, mail
from app.errors import BookingCoreError
from app.database import use_immediate_transactions


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )

    # Extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    with app.app_context():
        use_immediate_transactions(db.engine)

    # Models must be imported after 'db' exists
    from app import models  # noqa: F401

    @app.errorhandler(BookingCoreError)
    def handle_booking_error(error):
        app.logger.warning('%s: %s', error.code, error.message)
        return jsonify(error.to_dict()), error.status_code

    # Blueprints
    from app.routes.auth import auth as auth_blueprint
    app.register_blueprint(auth_blueprint)

    from app.routes.main import main as main_blueprint
    app.register_blueprint(main_blueprint)

    from app.routes.staff import staff as staff_blueprint
    app.register_blueprint(staff_blueprint, url_prefix='/staff')

    from app.routes.admin import admin as admin_blueprint
    app.register_blueprint(admin_blueprint, url_prefix='/admin')

    return app
