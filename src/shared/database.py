from pymongo import MongoClient, ASCENDING, DESCENDING
from typing import Optional
import dotenv
from datetime import datetime
import os
import logging
import threading

dotenv.load_dotenv()

logger = logging.getLogger(__name__)

def get_config_value(key, default=None):
    """
    Obtiene un valor de configuración desde las variables de entorno.

    Args:
        key (str): La clave de la variable de entorno
        default: Valor por defecto si no se encuentra la variable

    Returns:
        El valor de la variable de entorno o el valor por defecto
    """
    value = os.getenv(key, default)
    if value is None:
        logger.warning(f"Variable de entorno '{key}' no encontrada")
    return value

class DatabaseConnection:
    _instance: Optional[MongoClient] = None
    _db = None
    _indexes_setup_complete = False
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> MongoClient:
        """Obtiene la instancia singleton del cliente MongoDB"""
        if cls._instance is None:
            mongo_uri = get_config_value('MONGO_DB_URI')
            if not mongo_uri:
                logger.error("No se encontró la variable MONGO_DB_URI en la configuración")
                raise ValueError("MONGO_DB_URI no está configurado")

            logger.info("Configurando conexión a MongoDB...")

            cls._instance = MongoClient(
                mongo_uri,
                maxPoolSize=50,
                minPoolSize=5,
                maxIdleTimeMS=30000,
                connectTimeoutMS=20000,
                serverSelectionTimeoutMS=20000,
                socketTimeoutMS=20000,
                waitQueueTimeoutMS=10000
            )

            try:
                cls._instance.admin.command('ping')
                logger.info("Conexión a MongoDB establecida exitosamente")
            except Exception as e:
                logger.error(f"Error conectando a MongoDB: {str(e)}")
                cls._instance = None
                raise

        return cls._instance

    @classmethod
    def get_db(cls):
        """Obtiene la instancia de la base de datos"""
        if cls._db is None:
            with cls._lock:
                if cls._db is None:
                    db_name = get_config_value('DB_NAME')
                    if not db_name:
                        logger.error("No se encontró la variable DB_NAME en la configuración")
                        raise ValueError("DB_NAME no está configurado")

                    cls._db = cls.get_instance()[db_name]
        return cls._db

def get_db():
    """Helper function para obtener la conexión a la BD"""
    return DatabaseConnection.get_db()

def _ensure_index(collection, keys, name=None, **kwargs):
    """Crea un índice si no existe uno con el mismo nombre o las mismas claves"""
    try:
        start_time = datetime.utcnow()
        existing_indexes = collection.index_information()
        if name and name in existing_indexes:
            logger.debug(f"Índice '{name}' ya existe en {collection.name}")
            return name

        keys_tuple = tuple(keys)
        for existing_name, info in existing_indexes.items():
            if tuple(info.get('key', [])) == keys_tuple:
                logger.debug(f"Índice '{existing_name}' en {collection.name} ya cubre las claves {keys_tuple}")
                return existing_name

        created_name = collection.create_index(keys, name=name, **kwargs)
        duration = (datetime.utcnow() - start_time).total_seconds()
        logger.info(f"Índice '{created_name}' creado en {collection.name} ({duration:.3f}s)")
        return created_name
    except Exception as e:
        logger.error(f"Error creando índice {name or keys} en {collection.name}: {str(e)}")
        return None

def setup_database_indexes(db=None):
    """
    Configura los índices de la base de datos.

    Incluye el índice único (student_id, learning_path_id) que garantiza un único
    documento de progreso por estudiante y ruta. Se ejecuta una sola vez por proceso.
    """
    if db is None:
        db = get_db()

    with DatabaseConnection._lock:
        if DatabaseConnection._indexes_setup_complete:
            logger.debug("Los índices ya han sido configurados. Saltando setup_database_indexes.")
            return True

        try:
            logger.info("Iniciando configuración de índices de base de datos...")

            # Progreso
            _ensure_index(db.progress, [("student_id", ASCENDING), ("learning_path_id", ASCENDING)],
                          name="idx_progress_student_path", unique=True)
            _ensure_index(db.progress, [("group_id", ASCENDING)], name="idx_progress_group")

            # Jerarquía de contenido
            _ensure_index(db.learning_paths, [("group_id", ASCENDING)], name="idx_learning_paths_group")
            _ensure_index(db.modules, [("learning_path_id", ASCENDING), ("orden", ASCENDING)],
                          name="idx_modules_path_orden")
            _ensure_index(db.themes, [("module_id", ASCENDING), ("orden", ASCENDING)],
                          name="idx_themes_module_orden")
            _ensure_index(db.content_assignments, [("theme_id", ASCENDING), ("orden", ASCENDING)],
                          name="idx_assignments_theme_orden")

            # Consulta del planificador de estados
            _ensure_index(db.content_assignments, [("status", ASCENDING), ("fecha_fin", ASCENDING)],
                          name="idx_assignments_status_fecha_fin")

            # Membresías y grupos
            _ensure_index(db.memberships, [("grupo_id", ASCENDING), ("estado_solicitud", ASCENDING)],
                          name="idx_memberships_group_status")
            _ensure_index(db.memberships, [("usuario_id", ASCENDING), ("grupo_id", ASCENDING)],
                          name="idx_memberships_user_group")
            _ensure_index(db.groups, [("docente_id", ASCENDING)], name="idx_groups_docente")

            # Notificaciones
            _ensure_index(db.notifications, [("recipient", ASCENDING), ("createdAt", DESCENDING)],
                          name="idx_notifications_recipient_date")

            DatabaseConnection._indexes_setup_complete = True
            logger.info("Configuración de índices de base de datos completada exitosamente")
            return True

        except Exception as e:
            logger.error(f"Error durante la configuración de índices: {str(e)}")
            return False
