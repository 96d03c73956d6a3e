from librarydesk.config import settings


def _add_book(client, title="Dune", author="Frank Herbert", quantity=2):
    response = client.post("/api/books", json={"title": title, "author": author, "quantity": quantity})
    assert response.status_code == 200
    return response.json()["id"]


def _add_student(client, name="Asha Rao"):
    response = client.post("/api/students", json={"name": name, "department": "Physics", "phone": "555-0101"})
    assert response.status_code == 200
    return response.json()["id"]


def test_health(anon_client):
    response = anon_client.get("/health")
    assert response.status_code == 200
    assert response.json()["db"] is True


def test_login_with_valid_credentials(anon_client):
    response = anon_client.post(
        "/api/login", json={"username": settings.admin_username, "password": settings.admin_password}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["user"]["username"] == settings.admin_username
    assert settings.session_cookie_name in response.cookies


def test_login_with_invalid_credentials(anon_client):
    response = anon_client.post("/api/login", json={"username": "admin", "password": "wrong"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid credentials"}


def test_me_and_logout(client):
    me = client.get("/api/me").json()
    assert me["authenticated"] is True
    assert me["user"]["username"] == settings.admin_username

    assert client.post("/api/logout").json() == {"success": True}

    assert client.get("/api/me").json() == {"authenticated": False}
    assert client.get("/api/books").status_code == 401


def test_me_without_session(anon_client):
    assert anon_client.get("/api/me").json() == {"authenticated": False}


def test_data_routes_require_session(anon_client):
    for path in ("/api/stats", "/api/books", "/api/students", "/api/issues"):
        response = anon_client.get(path)
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Not authenticated"}


def test_stats_empty(client):
    assert client.get("/api/stats").json() == {"totalBooks": 0, "totalStudents": 0, "issuedBooks": 0}


def test_book_lifecycle(client):
    book_id = _add_book(client, "T", "A", 5)

    books = client.get("/api/books").json()
    assert books == [{"id": book_id, "title": "T", "author": "A", "quantity": 5, "available": 5}]

    response = client.put(f"/api/books/{book_id}", json={"title": "T2", "author": "A2", "quantity": 3})
    assert response.json() == {"success": True}
    assert client.get("/api/books").json()[0]["available"] == 3

    assert client.delete(f"/api/books/{book_id}").json() == {"success": True}
    assert client.get("/api/books").json() == []


def test_add_book_negative_quantity(client):
    response = client.post("/api/books", json={"title": "T", "author": "A", "quantity": -1})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_add_book_missing_field(client):
    response = client.post("/api/books", json={"title": "T"})
    assert response.status_code == 422


def test_update_and_delete_unknown_book(client):
    assert client.put("/api/books/99", json={"title": "T", "author": "A", "quantity": 1}).status_code == 404
    assert client.delete("/api/books/99").status_code == 404


def test_students(client):
    student_id = _add_student(client)
    assert client.get("/api/students").json() == [
        {"id": student_id, "name": "Asha Rao", "department": "Physics", "phone": "555-0101"}
    ]


def test_issue_and_return_flow(client):
    book_id = _add_book(client, quantity=2)
    student_id = _add_student(client)

    response = client.post("/api/issue", json={"student_id": student_id, "book_id": book_id, "issue_date": "2024-03-01"})
    assert response.status_code == 200
    issue_id = response.json()["id"]

    issues = client.get("/api/issues").json()
    assert len(issues) == 1
    assert issues[0]["student_name"] == "Asha Rao"
    assert issues[0]["book_title"] == "Dune"
    assert issues[0]["status"] == "issued"
    assert client.get("/api/stats").json() == {"totalBooks": 2, "totalStudents": 1, "issuedBooks": 1}

    response = client.post("/api/return", json={"issue_id": issue_id, "return_date": "2024-03-09"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "fine": 2}

    assert client.get("/api/issues").json() == []
    assert client.get("/api/books").json()[0]["available"] == 2


def test_issue_unavailable_book(client):
    book_id = _add_book(client, quantity=0)
    student_id = _add_student(client)

    response = client.post("/api/issue", json={"student_id": student_id, "book_id": book_id, "issue_date": "2024-03-01"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Book not available"}


def test_issue_unknown_student(client):
    book_id = _add_book(client)
    response = client.post("/api/issue", json={"student_id": 77, "book_id": book_id, "issue_date": "2024-03-01"})
    assert response.status_code == 404


def test_return_unknown_issue(client):
    response = client.post("/api/return", json={"issue_id": 5, "return_date": "2024-03-09"})
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Issue record not found"}


def test_double_return_conflicts(client):
    book_id = _add_book(client, quantity=1)
    student_id = _add_student(client)
    issue_id = client.post(
        "/api/issue", json={"student_id": student_id, "book_id": book_id, "issue_date": "2024-01-01"}
    ).json()["id"]

    assert client.post("/api/return", json={"issue_id": issue_id, "return_date": "2024-01-12"}).json()["fine"] == 8
    response = client.post("/api/return", json={"issue_id": issue_id, "return_date": "2024-01-12"})

    assert response.status_code == 409
    assert client.get("/api/books").json()[0]["available"] == 1


def test_delete_book_on_loan_conflicts(client):
    book_id = _add_book(client, quantity=1)
    student_id = _add_student(client)
    client.post("/api/issue", json={"student_id": student_id, "book_id": book_id, "issue_date": "2024-01-01"})

    assert client.delete(f"/api/books/{book_id}").status_code == 409


def test_oversized_quantity_is_rejected(client):
    response = client.post("/api/books", json={"title": "T", "author": "A", "quantity": 10 ** 20})
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Quantity is too large"}


def test_oversized_ids_are_rejected(client):
    book_id = _add_book(client, quantity=1)
    student_id = _add_student(client)
    huge = 10 ** 20

    response = client.post("/api/issue", json={"student_id": student_id, "book_id": huge, "issue_date": "2024-03-01"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Book not available"}

    response = client.post("/api/issue", json={"student_id": huge, "book_id": book_id, "issue_date": "2024-03-01"})
    assert response.status_code == 404

    response = client.post("/api/return", json={"issue_id": huge, "return_date": "2024-03-09"})
    assert response.status_code == 404

    assert client.put(f"/api/books/{huge}", json={"title": "T", "author": "A", "quantity": 1}).status_code == 404
    assert client.delete(f"/api/books/{huge}").status_code == 404
    assert client.get("/api/books").json()[0]["available"] == 1
