from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from src.shared.database import get_db, setup_database_indexes
from config import active_config, validate_env_vars
import logging
import os
import sys
from src.shared.constants import APP_PREFIX, APP_NAME
from src.shared.exceptions import AppException
from src.shared.limiter import limiter

# Configuración de logging
logging_level = logging.DEBUG if active_config.DEBUG else logging.INFO
logging.basicConfig(
    level=logging_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Verificar variables de entorno críticas
if not validate_env_vars():
    logger.critical("Faltan variables de entorno críticas. Por favor, configure el archivo .env")
    if os.getenv('ENFORCE_ENV_VALIDATION', '0') == '1':
        sys.exit(1)
    else:
        logger.warning("Continuando a pesar de la falta de variables de entorno. Esto puede causar errores.")

# Importar Blueprints
from src.progress.routes import progress_bp
from src.learning_paths.routes import learning_paths_bp
from src.notifications.routes import notifications_bp
from src.notifications.dispatcher import RoomNotificationDispatcher
from src.notifications.services import NotificationService
from src.scheduler.activity_status import ActivityStatusScheduler


def create_app(config_object=active_config):
    """
    Crea y configura la aplicación Flask
    """
    app = Flask(APP_NAME)

    # Aplicar configuración
    app.config.from_object(config_object)

    # Configurar CORS
    CORS(app, resources={
        rf"{APP_PREFIX}/*": {
            "origins": app.config["CORS_ORIGINS"],
            "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "supports_credentials": True
        }
    })

    # Desactivar modo estricto para slashes en URLs
    app.url_map.strict_slashes = False

    JWTManager(app)
    limiter.init_app(app)

    # Canal en tiempo real de las notificaciones, una sala por usuario
    dispatcher = RoomNotificationDispatcher()
    app.extensions["notification_dispatcher"] = dispatcher

    # Sistema unificado de logging para endpoints
    @app.after_request
    def log_response(response):
        api_logging = app.config.get('API_LOGGING', 'basic')

        if api_logging == 'none':
            return response

        method = request.method
        path = request.path
        status = response.status_code

        if api_logging == 'basic':
            logger.info(f"API: {method} {path} - Status: {status}")
            return response

        # Logging detallado (api_logging == 'detailed')
        request_data = None
        if request.method in ['POST', 'PUT', 'PATCH'] and request.is_json:
            request_data = request.get_json(silent=True)
        elif request.args:
            logger.info(f"URL Query Params: {dict(request.args)}")

        response_data = None
        if response.content_type == 'application/json':
            response_data = response.get_json(silent=True)

        logger.info(f"API REQUEST: {method} {path}")
        if request_data:
            logger.info(f"Request Data: {request_data}")

        logger.info(f"API RESPONSE: {method} {path} - Status: {status}")
        if response_data:
            logger.info(f"Response Data: {response_data}")

        return response

    # Verificar conexión a la base de datos
    if not app.config.get('TESTING'):
        try:
            get_db()
            logger.info("Conexión a MongoDB establecida")

            if app.config['DEBUG'] or os.getenv('SETUP_INDEXES', '0') == '1':
                logger.info("Configurando índices de la base de datos...")
                if setup_database_indexes():
                    logger.info("Índices configurados correctamente")
                else:
                    logger.warning("No se pudieron configurar todos los índices")
        except Exception as e:
            logger.error(f"Error al conectar a MongoDB: {str(e)}")
            logger.warning("La aplicación se está ejecutando sin conexión a la base de datos. Las operaciones pueden fallar.")

    # Registrar manejo de errores global
    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({
            "success": False,
            "error": "NOT_FOUND",
            "message": "Recurso no encontrado"
        }), 404

    @app.errorhandler(429)
    def handle_rate_limit(error):
        return jsonify({
            "success": False,
            "error": "LIMITE_EXCEDIDO",
            "message": "Demasiadas solicitudes. Inténtalo más tarde."
        }), 429

    # Excepciones que escapan de handle_errors (por ejemplo en handlers sin APIRoute)
    @app.errorhandler(Exception)
    def handle_unhandled_exception(error):
        if isinstance(error, AppException):
            response = {
                "success": False,
                "error": error.__class__.__name__,
                "message": str(error.message)
            }
            if error.details:
                response["details"] = error.details
            if error.errors:
                response["errors"] = error.errors
            return jsonify(response), error.code

        if hasattr(error, 'code') and hasattr(error, 'description'):
            return jsonify({
                "success": False,
                "error": error.__class__.__name__,
                "message": error.description
            }), error.code

        logger.exception(f"Error no controlado: {error}")
        return jsonify({
            "success": False,
            "error": "ERROR_SERVIDOR",
            "message": "Error interno del servidor"
        }), 500

    # Registrar Blueprints
    app.register_blueprint(progress_bp, url_prefix=f'{APP_PREFIX}/progress')
    app.register_blueprint(learning_paths_bp, url_prefix=f'{APP_PREFIX}/learning-paths')
    app.register_blueprint(notifications_bp, url_prefix=f'{APP_PREFIX}/notifications')

    # Cierre automático de asignaciones vencidas
    if app.config.get('ACTIVITY_STATUS_UPDATER_ENABLED') and not app.config.get('TESTING'):
        scheduler = ActivityStatusScheduler(
            notification_service=NotificationService(dispatcher=dispatcher),
            interval_seconds=app.config.get('ACTIVITY_STATUS_INTERVAL_SECONDS', 60)
        )
        scheduler.start()
        app.extensions["activity_status_scheduler"] = scheduler

    @app.route('/')
    def health_check():
        """Endpoint para verificar la salud de la aplicación"""
        scheduler = app.extensions.get("activity_status_scheduler")
        return jsonify({
            "status": "healthy",
            "version": "1.0.0",
            "env": os.getenv('FLASK_ENV', 'development'),
            "activity_status_scheduler": bool(scheduler and scheduler.is_running)
        })

    return app

# Crear la aplicación para que Vercel pueda encontrarla
app = create_app()

if __name__ == '__main__':
    logger.info(f"Iniciando aplicación en modo {os.getenv('FLASK_ENV', 'development')}")
    app.run(
        debug=app.config['DEBUG'],
        host='0.0.0.0',
        port=app.config['PORT'],
        use_reloader=False
    )
