"""
Reglas de agregación del progreso Tema -> Módulo -> Ruta.

Funciones puras sobre un objeto Progress: no leen ni escriben en la base de
datos. La estructura de la ruta se recibe ya resuelta como un dict ordenado
{module_id: [theme_id, ...]} con ids en texto.

Dos familias de reglas:
- Eventos del estudiante (record_theme_event, update_module_after_theme_event,
  complete_path_if_done): un tema Completado nunca vuelve a Visto; un módulo
  Completado solo baja si la ruta ganó temas que el estudiante no ha completado.
- Recálculo completo (recompute_dependent_statuses): lo usan los overrides del
  docente y puede degradar módulos y la ruta cuando dejan de cumplirse.
"""

from datetime import datetime
from typing import Dict, List, Optional

from src.shared.constants import PATH_STATUS, MODULE_STATUS, THEME_STATUS
from .models import Progress

PathStructure = Dict[str, List[str]]

COMPLETED = THEME_STATUS["COMPLETED"]
SEEN = THEME_STATUS["SEEN"]
ACTIVE_THEME_STATUSES = (SEEN, COMPLETED)


def record_theme_event(progress: Progress, theme_id: str, status: str, now: datetime) -> bool:
    """
    Registra Visto/Completado para un tema.

    Un tema Completado no vuelve a Visto; un Visto repetido solo refresca la fecha.

    Returns:
        True si esta llamada es la que completó el tema
    """
    previous = progress.theme_status(theme_id)

    if previous is None:
        progress.set_theme(theme_id, status, now)
        return status == COMPLETED

    if status == COMPLETED or (previous == SEEN and status == SEEN):
        progress.set_theme(theme_id, status, now)
        return previous != COMPLETED and status == COMPLETED

    return False


def classify_module(progress: Progress, theme_ids: List[str]) -> Optional[str]:
    """
    Estado de un módulo derivado solo de sus temas.

    Returns:
        Completado si todos los temas están completados (también sin temas),
        En Progreso si alguno está visto o completado, None (No Iniciado) si ninguno
    """
    statuses = [progress.theme_status(theme_id) for theme_id in theme_ids]
    if all(status == COMPLETED for status in statuses):
        return MODULE_STATUS["COMPLETED"]
    if any(status in ACTIVE_THEME_STATUSES for status in statuses):
        return MODULE_STATUS["IN_PROGRESS"]
    return None


def _downgrade_module(progress: Progress, module_id: str, derived: Optional[str]) -> None:
    if derived == MODULE_STATUS["IN_PROGRESS"]:
        progress.set_module(module_id, derived, None)
    else:
        progress.remove_module(module_id)


def update_module_after_theme_event(progress: Progress, module_id: str,
                                    theme_ids: List[str], now: datetime) -> bool:
    """
    Actualiza el módulo padre tras un evento del estudiante.

    Un módulo Completado solo se conserva mientras todos sus temas actuales lo
    estén; si se añadió un tema nuevo vuelve a En Progreso. El evento sobre un
    tema quita la marca de En Progreso forzado por el docente.

    Returns:
        True si esta llamada es la que completó el módulo
    """
    current = progress.module_status(module_id)
    derived = classify_module(progress, theme_ids)

    if derived == MODULE_STATUS["COMPLETED"]:
        if current == MODULE_STATUS["COMPLETED"]:
            return False
        progress.set_module(module_id, derived, now)
        return True

    if current == MODULE_STATUS["COMPLETED"]:
        _downgrade_module(progress, module_id, derived)
    elif derived == MODULE_STATUS["IN_PROGRESS"] and (current is None or progress.module_forced(module_id)):
        progress.set_module(module_id, derived, None)
    return False


def complete_path_if_done(progress: Progress, structure: PathStructure, now: datetime) -> bool:
    """
    Marca la ruta Completado cuando todos sus módulos lo están.

    Cada módulo se vuelve a clasificar con sus temas actuales: los que ya
    cumplen (también los que no tienen temas) se registran como completados y
    los Completado que dejaron de cumplir se degradan.

    Returns:
        True si la ruta pasó a Completado en esta llamada
    """
    if progress.path_status == PATH_STATUS["COMPLETED"] or not structure:
        return False

    all_completed = True
    for module_id, theme_ids in structure.items():
        current = progress.module_status(module_id)
        derived = classify_module(progress, theme_ids)
        if derived == MODULE_STATUS["COMPLETED"]:
            if current != MODULE_STATUS["COMPLETED"]:
                progress.set_module(module_id, derived, now)
            continue
        all_completed = False
        if current == MODULE_STATUS["COMPLETED"]:
            _downgrade_module(progress, module_id, derived)

    if all_completed:
        progress.path_status = PATH_STATUS["COMPLETED"]
        progress.path_completion_date = now
        return True
    return False


def recompute_dependent_statuses(progress: Progress, structure: PathStructure, now: datetime) -> None:
    """
    Recalcula todos los módulos de la ruta a partir de sus temas y luego la ruta.

    - Módulo: Completado si todos sus temas lo están (también sin temas), En Progreso
      si hay alguno activo. Sin temas activos solo se conserva un En Progreso forzado
      por el docente; en otro caso se elimina la entrada.
    - Ruta: Completado si tiene al menos un módulo y todos están completados. Una ruta
      Completado que deja de cumplirlo vuelve a En Progreso. Si no, En Progreso cuando
      hay algún módulo o tema activo y No Iniciado cuando no hay ninguno.

    No persiste nada; quien llama guarda el documento.
    """
    for module_id, theme_ids in structure.items():
        current = progress.module_status(module_id)
        derived = classify_module(progress, theme_ids)

        if derived == MODULE_STATUS["COMPLETED"]:
            if current != MODULE_STATUS["COMPLETED"]:
                progress.set_module(module_id, derived, now)
        elif derived == MODULE_STATUS["IN_PROGRESS"]:
            if current != MODULE_STATUS["IN_PROGRESS"]:
                progress.set_module(module_id, derived, None)
        elif not (current == MODULE_STATUS["IN_PROGRESS"] and progress.module_forced(module_id)):
            progress.remove_module(module_id)

    module_statuses = [progress.module_status(module_id) for module_id in structure]

    if module_statuses and all(status == MODULE_STATUS["COMPLETED"] for status in module_statuses):
        if progress.path_status != PATH_STATUS["COMPLETED"]:
            progress.path_status = PATH_STATUS["COMPLETED"]
            progress.path_completion_date = now
        return

    if progress.path_status == PATH_STATUS["COMPLETED"]:
        progress.path_status = PATH_STATUS["IN_PROGRESS"]
        progress.path_completion_date = None
        return

    path_theme_ids = [theme_id for theme_ids in structure.values() for theme_id in theme_ids]
    any_active = (any(status is not None for status in module_statuses)
                  or any(progress.theme_status(theme_id) in ACTIVE_THEME_STATUSES for theme_id in path_theme_ids))
    progress.path_status = PATH_STATUS["IN_PROGRESS"] if any_active else PATH_STATUS["NOT_STARTED"]
