from typing import Dict, List, Optional
from bson import ObjectId

from src.shared.constants import COLLECTIONS, MEMBERSHIP_STATUS
from src.shared.standardization import VerificationBaseService
from src.shared.utils import to_object_id


class GroupAccessService(VerificationBaseService):
    """
    Consultas de solo lectura sobre grupos y membresías.

    La gestión de grupos (crear, aprobar solicitudes...) vive fuera de este
    servicio; aquí solo se responde quién es dueño de un grupo y quién es
    miembro aprobado.
    """

    def __init__(self, db=None):
        super().__init__(collection_name=COLLECTIONS["GROUPS"], db=db)

    def get_group(self, group_id) -> Optional[Dict]:
        return self.collection.find_one({"_id": to_object_id(group_id)})

    @staticmethod
    def is_group_owner(group: Optional[Dict], user_id) -> bool:
        return bool(group) and str(group.get("docente_id")) == str(user_id)

    def is_approved_member(self, student_id, group_id) -> bool:
        membership = self.db.memberships.find_one({
            "usuario_id": to_object_id(student_id),
            "grupo_id": to_object_id(group_id),
            "estado_solicitud": MEMBERSHIP_STATUS["APPROVED"]
        })
        return membership is not None

    def get_approved_student_ids(self, group_id) -> List[ObjectId]:
        memberships = self.db.memberships.find(
            {"grupo_id": to_object_id(group_id), "estado_solicitud": MEMBERSHIP_STATUS["APPROVED"]},
            {"usuario_id": 1}
        )
        return [membership["usuario_id"] for membership in memberships]

    def get_approved_students(self, group_id) -> List[Dict]:
        """
        Miembros aprobados con sus datos básicos, en el orden de las membresías.
        """
        student_ids = self.get_approved_student_ids(group_id)
        if not student_ids:
            return []

        users = self.db.users.find(
            {"_id": {"$in": student_ids}},
            {"nombre": 1, "apellidos": 1, "email": 1}
        )
        users_by_id = {str(user["_id"]): user for user in users}

        students = []
        for student_id in student_ids:
            user = users_by_id.get(str(student_id))
            if not user:
                continue
            students.append({
                "_id": user["_id"],
                "nombre": user.get("nombre", ""),
                "apellidos": user.get("apellidos", ""),
                "email": user.get("email", "")
            })
        return students
