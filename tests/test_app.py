import unittest
from unittest import mock

from fastapi.testclient import TestClient

from fake_firestore import FakeFirestore
from gradetrack.app import app
from gradetrack.services.auth_service import AuthResult, AuthServiceError
from gradetrack.services.firestore_service import FirestoreService
from gradetrack.services.gemini_client import GeminiClientError
from gradetrack.services.import_service import ImportService

HEADERS = {"x-user-id": "u1"}


class ApiTests(unittest.TestCase):
    def setUp(self):
        self.fs = FirestoreService(client=FakeFirestore())
        patcher = mock.patch("gradetrack.app.FirestoreService.from_settings", return_value=self.fs)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(app)

    def _semester(self, name="Semester 1"):
        res = self.client.post("/semesters", json={"name": name}, headers=HEADERS)
        self.assertEqual(res.status_code, 200)
        return res.json()["id"]

    def test_requires_user_header(self):
        self.assertEqual(self.client.get("/dashboard").status_code, 401)

    def test_grade_scale(self):
        rows = self.client.get("/grade-scale").json()
        self.assertEqual(rows[0]["letter_grade"], "A++")

    def test_subject_lifecycle_and_dashboard(self):
        sem1 = self._semester("Semester 1")
        sem2 = self._semester("Semester 2")

        res = self.client.post(
            f"/semesters/{sem1}/subjects",
            json={"name": "Maths", "credits": 4, "marks": 95, "status": "PASS"},
            headers=HEADERS,
        )
        self.assertEqual(res.status_code, 200)
        maths_id = res.json()["id"]
        self.assertEqual(res.json()["letterGrade"], "A++")

        self.client.post(
            f"/semesters/{sem2}/subjects",
            json={"name": "Physics", "credits": 2, "marks": 55},
            headers=HEADERS,
        )

        dashboard = self.client.get("/dashboard", headers=HEADERS).json()
        self.assertEqual(dashboard["cgpa"], 8.67)
        self.assertEqual(dashboard["classification"], "First Class with Distinction")

        res = self.client.put(
            f"/semesters/{sem1}/subjects/{maths_id}",
            json={"name": "Maths", "credits": 4, "marks": 40, "status": "PASS"},
            headers=HEADERS,
        )
        self.assertEqual(res.json()["status"], "RA")

        dashboard = self.client.get("/dashboard", headers=HEADERS).json()
        self.assertEqual(dashboard["cgpa"], 6.0)

        self.assertEqual(self.client.delete(f"/semesters/{sem1}/subjects/{maths_id}", headers=HEADERS).status_code, 200)
        self.assertEqual(self.client.delete(f"/semesters/{sem2}", headers=HEADERS).status_code, 200)
        dashboard = self.client.get("/dashboard", headers=HEADERS).json()
        self.assertEqual([s["name"] for s in dashboard["semesters"]], ["Semester 1"])
        self.assertFalse(dashboard["awarded"])

    def test_subject_validation(self):
        sem = self._semester()
        bad = [
            {"name": "", "credits": 3, "marks": 70},
            {"name": "X", "credits": 0, "marks": 70},
            {"name": "X", "credits": 3, "marks": 101},
            {"name": "X", "credits": 3, "status": "PASS"},
            {"name": "X", "credits": 3, "status": "FAIL"},
        ]
        for payload in bad:
            res = self.client.post(f"/semesters/{sem}/subjects", json=payload, headers=HEADERS)
            self.assertEqual(res.status_code, 422, payload)

        res = self.client.post(
            f"/semesters/{sem}/subjects", json={"name": "X", "credits": 3, "status": "ABS"}, headers=HEADERS
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["letterGrade"], "-")

    def test_marks_dropped_for_non_pass_status(self):
        sem = self._semester()
        res = self.client.post(
            f"/semesters/{sem}/subjects", json={"name": "X", "credits": 3, "marks": 80, "status": "W"}, headers=HEADERS
        )
        self.assertEqual(res.json()["status"], "W")
        self.assertIsNone(res.json()["marks"])
        subject_id = res.json()["id"]

        res = self.client.put(
            f"/semesters/{sem}/subjects/{subject_id}",
            json={"name": "X", "credits": 3, "marks": 92, "status": "ABS"},
            headers=HEADERS,
        )
        self.assertEqual(res.json()["status"], "ABS")
        self.assertEqual(res.json()["gradePoint"], 0)

        self.client.post(
            "/import",
            json={"semester_name": "Semester 2", "subjects": [{"name": "Y", "credits": 4, "marks": 88, "status": "AAA"}]},
            headers=HEADERS,
        )
        dashboard = self.client.get("/dashboard", headers=HEADERS).json()
        self.assertEqual(dashboard["cgpa"], 0)
        self.assertEqual(dashboard["credits_earned"], 0)

    def test_dashboard_with_superscript_semester_name(self):
        self._semester("²")
        res = self.client.get("/dashboard", headers=HEADERS)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["semesters"][0]["name"], "²")

    def test_missing_semester(self):
        res = self.client.post(
            "/semesters/nope/subjects", json={"name": "X", "credits": 3, "marks": 70}, headers=HEADERS
        )
        self.assertEqual(res.status_code, 404)
        self.assertEqual(self.client.patch("/semesters/nope", json={"name": "A"}, headers=HEADERS).status_code, 404)

    def test_import(self):
        res = self.client.post(
            "/import",
            json={
                "semester_name": "Semester 4",
                "subjects": [
                    {"name": "A", "credits": 4, "marks": 81, "status": "PASS"},
                    {"name": "B", "credits": 3, "status": "RA"},
                ],
            },
            headers=HEADERS,
        )
        self.assertEqual(res.json()["imported"], 2)
        dashboard = self.client.get("/dashboard", headers=HEADERS).json()
        self.assertEqual(dashboard["semesters"][0]["name"], "Semester 4")
        self.assertEqual(dashboard["cgpa"], 9.0)

    def test_extract(self):
        service = ImportService(mock.Mock())
        service.client.generate_json.return_value = {"subjects": [{"name": "A", "credits": 3, "status": "PASS"}]}
        with mock.patch("gradetrack.app.ImportService.from_settings", return_value=service):
            res = self.client.post("/import/extract", json={"text": "A 3 P"}, headers=HEADERS)
            self.assertEqual(res.json()["subjects"][0]["name"], "A")

            res = self.client.post("/import/extract", json={}, headers=HEADERS)
            self.assertIn("error", res.json())

    def test_extract_unconfigured(self):
        with mock.patch("gradetrack.app.ImportService.from_settings", side_effect=GeminiClientError("Missing key")):
            res = self.client.post("/import/extract", json={"text": "A"}, headers=HEADERS)
        self.assertEqual(res.status_code, 503)

    def test_feedback(self):
        service = mock.Mock()
        service.submit_feedback.return_value = "Thanks!"
        with mock.patch("gradetrack.app.FeedbackService.from_settings", return_value=service):
            res = self.client.post("/feedback", json={"type": "bug", "message": "short"}, headers=HEADERS)
            self.assertEqual(res.status_code, 422)

            res = self.client.post(
                "/feedback", json={"type": "bug", "message": "Something is broken"}, headers=HEADERS
            )
        self.assertEqual(res.json(), {"confirmation": "Thanks!"})

    def test_signup_creates_profile(self):
        auth = mock.Mock()
        auth.sign_up.return_value = AuthResult("u9", "a@b.com", "tok", "ref", "Ada L")
        with mock.patch("gradetrack.app.FirebaseAuthService.from_settings", return_value=auth):
            res = self.client.post(
                "/auth/signup",
                json={"first_name": "Ada", "last_name": "L", "email": "a@b.com", "password": "secret1"},
            )
        self.assertEqual(res.json()["uid"], "u9")
        self.assertEqual(self.fs.get_profile("u9")["firstName"], "Ada")

    def test_login_failure(self):
        auth = mock.Mock()
        auth.sign_in.side_effect = AuthServiceError("Invalid email or password.")
        with mock.patch("gradetrack.app.FirebaseAuthService.from_settings", return_value=auth):
            res = self.client.post("/auth/login", json={"email": "a@b.com", "password": "x"})
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["detail"], "Invalid email or password.")

    def test_delete_account(self):
        self._semester()
        auth = mock.Mock()
        with mock.patch("gradetrack.app.FirebaseAuthService.from_settings", return_value=auth):
            res = self.client.delete("/account", headers={**HEADERS, "x-id-token": "tok"})
        self.assertEqual(res.status_code, 200)
        auth.delete_account.assert_called_once_with("tok")
        self.assertEqual(self.fs.list_semesters("u1"), [])

    def test_delete_account_requires_token(self):
        self._semester()
        auth = mock.Mock()
        with mock.patch("gradetrack.app.FirebaseAuthService.from_settings", return_value=auth):
            res = self.client.delete("/account", headers=HEADERS)
        self.assertEqual(res.status_code, 401)
        auth.delete_account.assert_not_called()
        self.assertEqual(len(self.fs.list_semesters("u1")), 1)


if __name__ == "__main__":
    unittest.main()
