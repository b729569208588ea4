import logging
from flask import current_app, has_app_context

# Prefijo común para los loggers fuera de contexto Flask (hilos del planificador)
LOGGER_PREFIX = "rutas"


def get_logger(name: str = None) -> logging.Logger:
    """
    Obtiene el logger a usar para un módulo.

    Dentro de una petición se usa el logger de la aplicación Flask; fuera de ella
    (por ejemplo en el hilo del planificador) se usa un logger con nombre propio.

    Args:
        name: Nombre corto del módulo o servicio (ej. "progress", "scheduler")

    Returns:
        logging.Logger: Logger configurado
    """
    if has_app_context():
        return current_app.logger
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}" if name else LOGGER_PREFIX)


def log_error(message: str, error: Exception = None, module: str = None):
    """
    Registra un error. Si se pasa la excepción se añade su texto al mensaje.
    """
    logger = get_logger(module)
    if error:
        logger.error(f"{message}: {str(error)}")
    else:
        logger.error(message)


def log_info(message: str, module: str = None):
    get_logger(module).info(message)


def log_warning(message: str, module: str = None):
    get_logger(module).warning(message)
