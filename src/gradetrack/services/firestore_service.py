from datetime import datetime, timezone
import logging
from typing import Dict, Iterable, List, Optional

try:
    from google.cloud import firestore
except ModuleNotFoundError as exc:
    raise ModuleNotFoundError(
        "Missing dependency 'google-cloud-firestore'. Install the project with pip install -e ."
    ) from exc

from gradetrack.config.settings import settings
from gradetrack.core.dashboard import DashboardState, StoreSnapshot, apply_snapshot
from gradetrack.core.grades import process_subject
from gradetrack.core.models import RawSubject, SemesterRecord, Subject

logger = logging.getLogger(__name__)

# Firestore rejects batches above 500 writes.
MAX_BATCH_WRITES = 500


class FirestoreServiceError(Exception):
    pass


class FirestoreService:
    def __init__(self, project_id: str = "", client=None) -> None:
        if client is not None:
            self.db = client
            return
        if not project_id:
            raise FirestoreServiceError("Missing FIREBASE_PROJECT_ID in environment")
        self.db = firestore.Client(project=project_id)

    @classmethod
    def from_settings(cls) -> "FirestoreService":
        return cls(settings.firebase_project_id)

    def _user_ref(self, uid: str):
        return self.db.collection("users").document(uid)

    def _semesters(self, uid: str):
        return self._user_ref(uid).collection("semesters")

    def _subjects(self, uid: str, semester_id: str):
        return self._semesters(uid).document(semester_id).collection("subjects")

    def _existing_semester_ref(self, uid: str, semester_id: str):
        ref = self._semesters(uid).document(semester_id)
        if not ref.get().exists:
            raise FirestoreServiceError(f"Semester {semester_id} not found.")
        return ref

    def _commit_deletes(self, refs: Iterable) -> int:
        batch = self.db.batch()
        pending = 0
        deleted = 0
        for ref in refs:
            batch.delete(ref)
            pending += 1
            deleted += 1
            if pending == MAX_BATCH_WRITES:
                batch.commit()
                batch = self.db.batch()
                pending = 0
        if pending:
            batch.commit()
        return deleted

    # --- profile ---

    def ensure_user_profile(self, uid: str, email: str, first_name: str = "", last_name: str = "") -> None:
        ref = self._user_ref(uid)
        if not ref.get().exists:
            ref.set(
                {
                    "id": uid,
                    "email": email,
                    "firstName": first_name,
                    "lastName": last_name,
                    "createdAt": datetime.now(timezone.utc),
                }
            )

    def get_profile(self, uid: str) -> Dict:
        snap = self._user_ref(uid).get()
        if not snap.exists:
            return {}
        return snap.to_dict() or {}

    # --- reads ---

    def list_semesters(self, uid: str) -> List[SemesterRecord]:
        results: List[SemesterRecord] = []
        for doc in self._semesters(uid).stream():
            data = doc.to_dict() or {}
            results.append(SemesterRecord(id=doc.id, name=str(data.get("name", doc.id))))
        return results

    def list_subjects(self, uid: str, semester_id: str) -> List[Dict]:
        results: List[Dict] = []
        for doc in self._subjects(uid, semester_id).stream():
            data = doc.to_dict() or {}
            data["id"] = doc.id
            results.append(data)
        return results

    def snapshot(self, uid: str) -> StoreSnapshot:
        semesters = self.list_semesters(uid)
        return StoreSnapshot(
            semesters=semesters,
            subjects_by_semester={sem.id: self.list_subjects(uid, sem.id) for sem in semesters},
        )

    def get_dashboard(self, uid: str, state: Optional[DashboardState] = None) -> DashboardState:
        return apply_snapshot(state or DashboardState.empty(), self.snapshot(uid))

    # --- semesters ---

    def add_semester(self, uid: str, name: str) -> SemesterRecord:
        ref = self._semesters(uid).document()
        ref.set({"name": name, "createdAt": datetime.now(timezone.utc)})
        logger.info("Created semester %s for user %s", ref.id, uid)
        return SemesterRecord(id=ref.id, name=name)

    def rename_semester(self, uid: str, semester_id: str, name: str) -> None:
        self._existing_semester_ref(uid, semester_id).update({"name": name})

    def delete_semester(self, uid: str, semester_id: str) -> int:
        semester_ref = self._existing_semester_ref(uid, semester_id)
        refs = [doc.reference for doc in self._subjects(uid, semester_id).stream()]
        refs.append(semester_ref)
        removed = self._commit_deletes(refs)
        logger.info("Deleted semester %s (%d documents) for user %s", semester_id, removed, uid)
        return removed

    def import_semester(self, uid: str, name: str, subjects: Iterable[RawSubject]) -> SemesterRecord:
        processed = [process_subject(raw) for raw in subjects]
        semester = self.add_semester(uid, name)
        subjects_ref = self._subjects(uid, semester.id)

        for start in range(0, len(processed), MAX_BATCH_WRITES):
            batch = self.db.batch()
            for subject in processed[start:start + MAX_BATCH_WRITES]:
                batch.set(subjects_ref.document(subject.id), subject.to_document())
            batch.commit()

        logger.info("Imported %d subjects into semester %s for user %s", len(processed), semester.id, uid)
        return semester

    # --- subjects ---

    def add_subject(self, uid: str, semester_id: str, raw: RawSubject) -> Subject:
        self._existing_semester_ref(uid, semester_id)
        subject = process_subject(raw)
        self._subjects(uid, semester_id).document(subject.id).set(subject.to_document())
        return subject

    def update_subject(self, uid: str, semester_id: str, subject_id: str, raw: RawSubject) -> Subject:
        ref = self._subjects(uid, semester_id).document(subject_id)
        if not ref.get().exists:
            raise FirestoreServiceError(f"Subject {subject_id} not found.")
        subject = process_subject(
            RawSubject(name=raw.name, credits=raw.credits, status=raw.status, marks=raw.marks, id=subject_id)
        )
        ref.update(subject.to_document())
        return subject

    def delete_subject(self, uid: str, semester_id: str, subject_id: str) -> None:
        self._subjects(uid, semester_id).document(subject_id).delete()

    # --- account ---

    def delete_user_data(self, uid: str) -> int:
        refs = []
        for semester_doc in self._semesters(uid).stream():
            refs.extend(doc.reference for doc in semester_doc.reference.collection("subjects").stream())
            refs.append(semester_doc.reference)
        refs.append(self._user_ref(uid))
        removed = self._commit_deletes(refs)
        logger.info("Deleted %d documents for user %s", removed, uid)
        return removed
