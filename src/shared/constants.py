# Configuración de la aplicación
APP_NAME = "rutas-aprendizaje-backend"
APP_PREFIX = "/api"

# Tipos de usuario (campo tipo_usuario en la colección users)
ROLES = {
    "STUDENT": "Estudiante",
    "TEACHER": "Docente",
    "ADMIN": "Administrador"
}

# Estados de solicitud de membresía a un grupo
MEMBERSHIP_STATUS = {
    "PENDING": "Pendiente",
    "APPROVED": "Aprobado",
    "REJECTED": "Rechazado"
}

# Estado de una ruta de aprendizaje para un estudiante
PATH_STATUS = {
    "NOT_STARTED": "No Iniciado",
    "IN_PROGRESS": "En Progreso",
    "COMPLETED": "Completado"
}

# Estado de un módulo dentro del progreso (No Iniciado = ausente del arreglo)
MODULE_STATUS = {
    "NOT_STARTED": "No Iniciado",
    "IN_PROGRESS": "En Progreso",
    "COMPLETED": "Completado"
}

# Estado de un tema dentro del progreso (No Iniciado = ausente del arreglo)
THEME_STATUS = {
    "NOT_STARTED": "No Iniciado",
    "SEEN": "Visto",
    "COMPLETED": "Completado"
}

# Ciclo de vida de una asignación de contenido
ASSIGNMENT_STATUS = {
    "DRAFT": "Draft",
    "OPEN": "Open",
    "CLOSED": "Closed"
}

# Discriminador de la asignación
ASSIGNMENT_TYPES = {
    "RESOURCE": "Resource",
    "ACTIVITY": "Activity"
}

# Estado de una entrega de actividad (colección submissions)
SUBMISSION_STATUS = {
    "PENDING": "Pendiente",
    "SUBMITTED": "Enviado",
    "GRADED": "Calificado"
}

# Subtipos de recursos y actividades
RESOURCE_TYPES = {
    "CONTENT": "Contenido",
    "LINK": "Enlace",
    "VIDEO_LINK": "Video-Enlace"
}

ACTIVITY_TYPES = {
    "QUESTIONNAIRE": "Cuestionario",
    "ASSIGNMENT": "Trabajo",
    "QUIZ": "Quiz"
}

# Subtipos de actividad que admiten cada campo numérico
POINTS_ACTIVITY_TYPES = [ACTIVITY_TYPES["QUIZ"], ACTIVITY_TYPES["QUESTIONNAIRE"], ACTIVITY_TYPES["ASSIGNMENT"]]
ATTEMPTS_ACTIVITY_TYPES = [ACTIVITY_TYPES["QUIZ"], ACTIVITY_TYPES["QUESTIONNAIRE"]]

# Tipos de notificación
NOTIFICATION_TYPES = {
    "NEW_ASSIGNMENT": "NEW_ASSIGNMENT",
    "GRADE_UPDATED": "GRADE_UPDATED",
    "SUBMISSION_RECEIVED": "SUBMISSION_RECEIVED",
    "MEMBERSHIP_APPROVED": "MEMBERSHIP_APPROVED",
    "MEMBERSHIP_REJECTED": "MEMBERSHIP_REJECTED",
    "GENERAL_INFO": "GENERAL_INFO"
}

# Evento emitido al canal en tiempo real del destinatario
NOTIFICATION_EVENT = "new_notification"

# Colecciones
COLLECTIONS = {
    "USERS": "users",
    "GROUPS": "groups",
    "MEMBERSHIPS": "memberships",
    "LEARNING_PATHS": "learning_paths",
    "MODULES": "modules",
    "THEMES": "themes",
    "CONTENT_ASSIGNMENTS": "content_assignments",
    "RESOURCES": "resources",
    "ACTIVITIES": "activities",
    "PROGRESS": "progress",
    "SUBMISSIONS": "submissions",
    "NOTIFICATIONS": "notifications"
}

# Título usado cuando la actividad referenciada ya no existe
UNKNOWN_ACTIVITY_TITLE = "NombreDesconocido"
