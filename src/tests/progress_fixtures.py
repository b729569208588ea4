from unittest.mock import MagicMock
from bson import ObjectId


def by_id(documents):
    table = {document["_id"]: document for document in documents}
    return lambda query, *args, **kwargs: table.get(query.get("_id"))


class LearningPathFixture:
    """
    Ruta con dos módulos: m1 (t1, t2) y m2 (t3). Los documentos de progreso
    se guardan en un dict para que las llamadas sucesivas los vuelvan a leer.
    """

    def __init__(self):
        self.db = MagicMock()
        self.db.__getitem__.side_effect = lambda name: getattr(self.db, name)

        self.teacher_id = ObjectId()
        self.student_id = ObjectId()
        self.group_id = ObjectId()
        self.path_id = ObjectId()
        self.other_path_id = ObjectId()
        self.m1, self.m2, self.foreign_module = ObjectId(), ObjectId(), ObjectId()
        self.t1, self.t2, self.t3, self.foreign_theme = ObjectId(), ObjectId(), ObjectId(), ObjectId()

        self.group = {"_id": self.group_id, "docente_id": self.teacher_id, "activo": True}
        self.db.groups.find_one.side_effect = by_id([self.group])
        self.db.learning_paths.find_one.side_effect = by_id([
            {"_id": self.path_id, "nombre": "Álgebra", "group_id": self.group_id},
            {"_id": self.other_path_id, "nombre": "Geometría", "group_id": self.group_id},
        ])
        self.db.modules.find_one.side_effect = by_id([
            {"_id": self.m1, "learning_path_id": self.path_id, "orden": 1},
            {"_id": self.m2, "learning_path_id": self.path_id, "orden": 2},
            {"_id": self.foreign_module, "learning_path_id": self.other_path_id, "orden": 1},
        ])
        self.db.themes.find_one.side_effect = by_id([
            {"_id": self.t1, "module_id": self.m1, "orden": 1},
            {"_id": self.t2, "module_id": self.m1, "orden": 2},
            {"_id": self.t3, "module_id": self.m2, "orden": 1},
            {"_id": self.foreign_theme, "module_id": self.foreign_module, "orden": 1},
        ])
        self.db.modules.find.return_value = [{"_id": self.m1}, {"_id": self.m2}]
        self.db.themes.find.return_value = [
            {"_id": self.t1, "module_id": self.m1},
            {"_id": self.t2, "module_id": self.m1},
            {"_id": self.t3, "module_id": self.m2},
        ]
        self.db.memberships.find_one.return_value = {"_id": ObjectId(), "estado_solicitud": "Aprobado"}

        self.saved = {}
        self.db.progress.find_one.side_effect = self._find_progress
        self.db.progress.insert_one.side_effect = self._insert_progress
        self.db.progress.replace_one.side_effect = self._replace_progress

    def _find_progress(self, query, *args, **kwargs):
        document = self.saved.get(str(query["student_id"]))
        return dict(document) if document else None

    def _insert_progress(self, document, *args, **kwargs):
        inserted_id = ObjectId()
        self.saved[str(document["student_id"])] = {**document, "_id": inserted_id}
        return MagicMock(inserted_id=inserted_id)

    def _replace_progress(self, query, document, *args, **kwargs):
        self.saved[str(document["student_id"])] = dict(document)
        return MagicMock(modified_count=1)


