from datetime import datetime
from types import SimpleNamespace

import bcrypt
import mongomock
import pytest
from flask_jwt_extended import create_access_token

import app as app_module
from factories import ADMIN_EMAIL, TEST_PASSWORD


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["nfccards_test"]


@pytest.fixture
def public_root(tmp_path):
    return tmp_path / "public"


@pytest.fixture
def app(monkeypatch, mongo_db, public_root):
    monkeypatch.setattr(app_module, "PyMongo", lambda flask_app: SimpleNamespace(db=mongo_db))
    return app_module.create_app(
        {
            "TESTING": True,
            "JWT_SECRET_KEY": "test-secret-key-long-enough-for-hs256-signing",
            "PUBLIC_ROOT": str(public_root),
            "DEFAULT_ADMIN_EMAIL": ADMIN_EMAIL,
        }
    )


@pytest.fixture
def client(app):
    return app.test_client()


def insert_user(db, email: str, name: str, role: str = "user"):
    document = {
        "email": email,
        "name": name,
        "password": bcrypt.hashpw(TEST_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)),
        "role": role,
        "createdAt": datetime.utcnow(),
    }
    document["_id"] = db.users.insert_one(document).inserted_id
    return document


@pytest.fixture
def customer(mongo_db):
    return insert_user(mongo_db, "customer@example.com", "Casey Customer")


@pytest.fixture
def other_customer(mongo_db):
    return insert_user(mongo_db, "other@example.com", "Olive Other")


@pytest.fixture
def admin(mongo_db):
    return insert_user(mongo_db, ADMIN_EMAIL, "Ada Admin", role="admin")


@pytest.fixture
def auth_headers(app):
    def build(user):
        with app.app_context():
            token = create_access_token(identity=user["email"])
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture
def product(mongo_db, admin):
    document = {
        "title": "Classic NFC Card",
        "description": "Matte PVC card with an embedded NFC chip.",
        "price": 20.0,
        "colors": ["black", "white"],
        "images": ["/img/products/default-product.jpg"],
        "isMainProduct": True,
        "createdBy": admin["_id"],
        "createdAt": datetime.utcnow(),
        "updatedAt": datetime.utcnow(),
    }
    document["_id"] = mongo_db.products.insert_one(document).inserted_id
    return document

