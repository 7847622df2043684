from conftest import PASSWORD, auth_headers


class TestRegister:

    def test_register_returns_token(self, client):
        response = client.post("/api/auth/register", json={
            "email": "new@example.com",
            "password": "longenough",
            "firstname": "Nina",
            "surname": "Conti",
            "gender": "FEMALE",
        })
        assert response.status_code == 201
        token = response.json()["access_token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["gender"] == "FEMALE"
        assert me.json()["role"] == "USER"

    def test_duplicate_email(self, client, marco):
        response = client.post("/api/auth/register", json={
            "email": marco.email,
            "password": "longenough",
            "firstname": "Marco",
            "surname": "Again",
            "gender": "MALE",
        })
        assert response.status_code == 400

    def test_gender_is_required(self, client):
        response = client.post("/api/auth/register", json={
            "email": "x@example.com", "password": "longenough", "firstname": "Xx", "surname": "Yy",
        })
        assert response.status_code == 422


class TestLogin:

    def test_login(self, client, marco):
        response = client.post("/api/auth/login", json={"email": marco.email, "password": PASSWORD})
        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

    def test_wrong_password(self, client, marco):
        response = client.post("/api/auth/login", json={"email": marco.email, "password": "nope"})
        assert response.status_code == 401

    def test_disabled_account(self, client, db, marco):
        marco.is_active = False
        db.commit()
        response = client.post("/api/auth/login", json={"email": marco.email, "password": PASSWORD})
        assert response.status_code == 403


class TestAuthGuard:

    def test_missing_token(self, client):
        assert client.get("/api/auth/me").status_code in (401, 403)

    def test_invalid_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    def test_admin_route_needs_admin(self, client, marco):
        response = client.get("/api/users", headers=auth_headers(marco))
        assert response.status_code == 403
