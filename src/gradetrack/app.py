from typing import Dict, List, Optional

from fastapi import FastAPI, Header, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from gradetrack.config.logging import configure_logging
from gradetrack.config.settings import settings
from gradetrack.core.grades import grade_scale_table
from gradetrack.schemas import (
    ExtractRequest,
    FeedbackPayload,
    ImportPayload,
    LoginPayload,
    PasswordResetPayload,
    SemesterPayload,
    SignUpPayload,
    SubjectPayload,
)
from gradetrack.services.auth_service import AuthServiceError, FirebaseAuthService
from gradetrack.services.feedback_service import FeedbackService
from gradetrack.services.firestore_service import FirestoreService, FirestoreServiceError
from gradetrack.services.gemini_client import GeminiClientError
from gradetrack.services.import_service import ImportService

configure_logging(settings.log_level)

app = FastAPI(title="GradeTrack API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _required_uid(x_user_id: Optional[str]) -> str:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing x-user-id header")
    return x_user_id


def _auth_response(result) -> Dict:
    return {
        "uid": result.uid,
        "email": result.email,
        "display_name": result.display_name,
        "id_token": result.id_token,
        "refresh_token": result.refresh_token,
    }


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/grade-scale")
def grade_scale() -> List[Dict]:
    return grade_scale_table()


@app.post("/auth/signup")
def signup(payload: SignUpPayload) -> Dict:
    try:
        auth = FirebaseAuthService.from_settings()
        display_name = f"{payload.first_name} {payload.last_name}".strip()
        result = auth.sign_up(payload.email, payload.password, display_name)
        FirestoreService.from_settings().ensure_user_profile(
            result.uid,
            result.email,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
        return _auth_response(result)
    except AuthServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@app.post("/auth/login")
def login(payload: LoginPayload) -> Dict:
    try:
        auth = FirebaseAuthService.from_settings()
        return _auth_response(auth.sign_in(payload.email, payload.password))
    except AuthServiceError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


@app.post("/auth/password-reset")
def password_reset(payload: PasswordResetPayload) -> Dict[str, str]:
    try:
        FirebaseAuthService.from_settings().send_password_reset(payload.email)
        return {"status": "sent"}
    except AuthServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.delete("/account")
def delete_account(
    x_user_id: Optional[str] = Header(default=None),
    x_id_token: Optional[str] = Header(default=None),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    if not x_id_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing x-id-token header")
    try:
        FirestoreService.from_settings().delete_user_data(uid)
        FirebaseAuthService.from_settings().delete_account(x_id_token)
        return {"status": "deleted"}
    except AuthServiceError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.get("/profile")
def get_profile(x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        return {"uid": uid, "profile": FirestoreService.from_settings().get_profile(uid)}
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.get("/dashboard")
def get_dashboard(x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        return FirestoreService.from_settings().get_dashboard(uid).to_dict()
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.post("/semesters")
def create_semester(payload: SemesterPayload, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        semester = FirestoreService.from_settings().add_semester(uid, payload.name)
        return {"id": semester.id, "name": semester.name}
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.patch("/semesters/{semester_id}")
def rename_semester(
    semester_id: str,
    payload: SemesterPayload,
    x_user_id: Optional[str] = Header(default=None),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        FirestoreService.from_settings().rename_semester(uid, semester_id, payload.name)
        return {"status": "updated"}
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@app.delete("/semesters/{semester_id}")
def delete_semester(semester_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        FirestoreService.from_settings().delete_semester(uid, semester_id)
        return {"status": "deleted"}
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@app.post("/semesters/{semester_id}/subjects")
def create_subject(
    semester_id: str,
    payload: SubjectPayload,
    x_user_id: Optional[str] = Header(default=None),
) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        return FirestoreService.from_settings().add_subject(uid, semester_id, payload.to_raw()).to_dict()
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@app.put("/semesters/{semester_id}/subjects/{subject_id}")
def update_subject(
    semester_id: str,
    subject_id: str,
    payload: SubjectPayload,
    x_user_id: Optional[str] = Header(default=None),
) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        fs = FirestoreService.from_settings()
        return fs.update_subject(uid, semester_id, subject_id, payload.to_raw(subject_id)).to_dict()
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@app.delete("/semesters/{semester_id}/subjects/{subject_id}")
def delete_subject(semester_id: str, subject_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        FirestoreService.from_settings().delete_subject(uid, semester_id, subject_id)
        return {"status": "deleted"}
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.post("/import/extract")
def extract_subjects(payload: ExtractRequest, x_user_id: Optional[str] = Header(default=None)) -> Dict:
    _required_uid(x_user_id)
    try:
        service = ImportService.from_settings()
    except GeminiClientError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return service.extract_semester_data(text=payload.text, photo_data_uri=payload.photo_data_uri).to_dict()


@app.post("/import")
def import_semester(payload: ImportPayload, x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        semester = FirestoreService.from_settings().import_semester(
            uid,
            payload.semester_name,
            [subject.to_raw() for subject in payload.subjects],
        )
        return {"id": semester.id, "name": semester.name, "imported": len(payload.subjects)}
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.post("/feedback")
def submit_feedback(
    payload: FeedbackPayload,
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        service = FeedbackService.from_settings()
    except GeminiClientError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    confirmation = service.submit_feedback(payload.type, payload.message, uid, x_user_email or "")
    return {"confirmation": confirmation}
