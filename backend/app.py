import os
from datetime import datetime, timedelta
from typing import Dict, Optional

import bcrypt
from dotenv import load_dotenv
from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS
from flask_jwt_extended import (
    JWTManager,
    create_access_token,
    get_jwt_identity,
    jwt_required,
)
from flask_pymongo import PyMongo
from pymongo.errors import DuplicateKeyError, PyMongoError
from werkzeug.middleware.proxy_fix import ProxyFix

from accounts import (
    get_user_role,
    is_valid_email,
    normalize_email,
    serialize_user,
)
from api_features import (
    delete_document,
    get_document,
    list_documents,
)
from file_uploads import (
    is_upload_path,
    relative_file_path,
    remove_public_file,
    remove_uploads,
    save_uploads,
)
from form_data import normalize_order_form
from order_pricing import LOGO_SURCHARGE
from order_validation import get_valid_cities, get_valid_countries
from order_workflow import (
    ESTIMATED_DELIVERY_DAYS,
    change_order_status,
    create_order,
    creation_message,
    expand_order_references,
    get_customer_orders,
    get_my_orders,
    get_order_for_user,
    update_order,
)
from products import (
    add_color,
    add_images,
    ensure_default_image,
    is_valid_color,
    normalize_images,
    product_price_stats,
    remove_color,
    remove_image,
    validate_product_payload,
)
from responses import (
    error_body,
    error_response,
    format_list_response,
    format_order_response,
    serialize_document,
)

load_dotenv()

DEFAULT_ADMIN_EMAIL = normalize_email(os.getenv("DEFAULT_ADMIN_EMAIL", ""))
ORDER_UPLOAD_FIELDS = ("companyLogo",)
PRODUCT_UPLOAD_FIELDS = ("images", "image")


def create_app(test_config: Optional[Dict] = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Honor proxy headers so upload URLs keep the public origin.
    trusted_proxy_hops_raw = os.getenv("TRUSTED_PROXY_HOPS", "1")
    try:
        trusted_proxy_hops = max(0, int(trusted_proxy_hops_raw))
    except (TypeError, ValueError):
        trusted_proxy_hops = 1
    if trusted_proxy_hops:
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=trusted_proxy_hops,
            x_proto=trusted_proxy_hops,
            x_host=trusted_proxy_hops,
            x_port=trusted_proxy_hops,
        )

    # --- Configuration ---
    app.config["JWT_SECRET_KEY"] = os.getenv(
        "JWT_SECRET_KEY", "change-me-in-production"
    )
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(
        hours=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES", "24"))
    )
    app.config["MONGO_URI"] = os.getenv(
        "MONGO_URI", "mongodb://localhost:27017/nfccards"
    )
    max_upload_mb = int(os.getenv("MAX_UPLOAD_SIZE_MB", "16"))
    app.config["MAX_CONTENT_LENGTH"] = max_upload_mb * 1024 * 1024
    app.config["PUBLIC_ROOT"] = os.getenv(
        "PUBLIC_ROOT", os.path.join(app.root_path, "public")
    )
    app.config["LOGO_SURCHARGE"] = float(os.getenv("LOGO_SURCHARGE", str(LOGO_SURCHARGE)))
    app.config["ESTIMATED_DELIVERY_DAYS"] = int(
        os.getenv("ESTIMATED_DELIVERY_DAYS", str(ESTIMATED_DELIVERY_DAYS))
    )
    app.config["DEFAULT_ADMIN_EMAIL"] = DEFAULT_ADMIN_EMAIL

    if test_config:
        app.config.update(test_config)

    if os.path.basename(os.path.normpath(app.config["PUBLIC_ROOT"])) != "public":
        raise RuntimeError(
            f"PUBLIC_ROOT must point at a directory named 'public', got {app.config['PUBLIC_ROOT']}"
        )

    os.makedirs(os.path.join(app.config["PUBLIC_ROOT"], "uploads"), exist_ok=True)

    # --- Initialize extensions ---
    allowed_origins = [
        origin.strip()
        for origin in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    ]
    CORS(app, supports_credentials=True, origins=allowed_origins or "*")

    jwt = JWTManager(app)
    mongo = PyMongo(app)
    db = mongo.db
    audit_logs_collection = db.audit_logs

    try:
        db.users.create_index("email", unique=True)
        db.orders.create_index([("customer", 1), ("createdAt", -1)])
        db.products.create_index([("price", 1)])
        db.products.create_index([("createdBy", 1)])
        audit_logs_collection.create_index([("created_at", -1)])
    except Exception as exc:
        app.logger.warning("Unable to ensure indexes: %s", exc)

    # --- Helpers ---

    def admin_email() -> str:
        return normalize_email(app.config.get("DEFAULT_ADMIN_EMAIL"))

    def is_admin_user(user_document) -> bool:
        return get_user_role(user_document, admin_email()) == "admin"

    def load_current_user():
        current_email = normalize_email(get_jwt_identity())
        current_user = db.users.find_one({"email": current_email}) if current_email else None
        if not current_user:
            return None, False, error_response("Account not found.", 401)
        return current_user, is_admin_user(current_user), None

    def require_admin_user():
        current_user, is_admin, user_error = load_current_user()
        if user_error:
            return None, user_error
        if not is_admin:
            return None, error_response(
                "You need additional permissions to perform this action.", 403
            )
        return current_user, None

    def record_audit_log(
        actor_email: Optional[str], action: str, metadata: Optional[Dict] = None
    ):
        if not action:
            return
        try:
            audit_logs_collection.insert_one(
                {
                    "user_email": normalize_email(actor_email) or None,
                    "action": action,
                    "metadata": {
                        str(key): str(value)
                        for key, value in (metadata or {}).items()
                        if value is not None
                    },
                    "created_at": datetime.utcnow(),
                }
            )
        except Exception as exc:
            app.logger.warning("Unable to record audit log: %s", exc)

    def read_request_payload() -> Dict:
        if request.form or request.files:
            return request.form.to_dict()
        payload = request.get_json(silent=True)
        return payload if isinstance(payload, dict) else {}

    def can_manage_product(product_document, user_document) -> bool:
        if not product_document or not user_document:
            return False
        if is_admin_user(user_document):
            return True
        return product_document.get("createdBy") == user_document.get("_id")

    def load_managed_product(product_id: str):
        current_user, _, user_error = load_current_user()
        if user_error:
            return None, None, user_error

        product_document, load_error = get_document(db.products, product_id, "product")
        if load_error:
            return None, None, error_response(*load_error)

        if not can_manage_product(product_document, current_user):
            return (
                None,
                None,
                error_response("You do not have permission to modify this product.", 403),
            )
        return product_document, current_user, None

    def is_upload_referenced(relative_path: str) -> bool:
        return (
            db.orders.find_one({"cardDesign.companyLogo": relative_path}, {"_id": 1}) is not None
            or db.products.find_one({"images": relative_path}, {"_id": 1}) is not None
        )

    def discard_public_file(relative_path: Optional[str], subdirectory: str) -> None:
        # Only files no order or product points at any more.
        if not is_upload_path(relative_path, subdirectory):
            return
        if is_upload_referenced(relative_path):
            app.logger.info("Keeping %s, still referenced", relative_path)
            return
        remove_public_file(app.config["PUBLIC_ROOT"], relative_path)
        app.logger.info("Removed unreferenced upload %s", relative_path)

    def save_product_changes(product_document, updates: Dict):
        updates["updatedAt"] = datetime.utcnow()
        db.products.update_one({"_id": product_document["_id"]}, {"$set": updates})
        return db.products.find_one({"_id": product_document["_id"]})

    def product_response(product_document, message: str, status_code: int = 200):
        return (
            jsonify(
                {
                    "status": "success",
                    "data": {"product": serialize_document(product_document)},
                    "message": message,
                }
            ),
            status_code,
        )

    # --- Error handlers ---

    @jwt.unauthorized_loader
    def missing_token_callback(reason: str):
        return error_response("You are not logged in. Please log in to get access.", 401)

    @jwt.invalid_token_loader
    def invalid_token_callback(reason: str):
        return error_response("Invalid token. Please log in again.", 401)

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return error_response("Your token has expired. Please log in again.", 401)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify(error_body(f"Can not find {request.path} on the server", 404)), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify(error_body("Method not allowed.", 405)), 405

    @app.errorhandler(413)
    def upload_too_large(error):
        return jsonify(error_body("The uploaded file is too large.", 413)), 413

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(
            "Unhandled error on %s %s: %s",
            request.method,
            request.path,
            getattr(error, "original_exception", error),
        )
        return jsonify(error_body("Something went wrong.", 500)), 500

    # --- ROUTES ---

    @app.route("/uploads/<path:filename>")
    def serve_uploaded_file(filename: str):
        return send_from_directory(
            os.path.join(app.config["PUBLIC_ROOT"], "uploads"), filename
        )

    @app.route("/health")
    def health():
        return {"status": "ok"}, 200

    # Users
    @app.route("/api/v1/users/signup", methods=["POST"])
    def signup():
        payload = request.get_json(silent=True) or {}
        email = normalize_email(payload.get("email"))
        name = str(payload.get("name", "")).strip()
        password = str(payload.get("password", ""))

        if not email or not name or not password:
            return error_response(
                "Email, name, and password are required to create an account.", 400
            )
        if not is_valid_email(email):
            return error_response("Please provide a valid email address.", 400)
        if len(password) < 8:
            return error_response("Password must be at least 8 characters.", 400)

        if db.users.find_one({"email": email}):
            return error_response("An account with this email already exists.", 400)

        hashed_pw = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        user_document = {
            "email": email,
            "name": name,
            "password": hashed_pw,
            "role": "admin" if email == admin_email() else "user",
            "createdAt": datetime.utcnow(),
        }
        try:
            insert_result = db.users.insert_one(user_document)
        except DuplicateKeyError:
            return error_response("An account with this email already exists.", 400)
        user_document["_id"] = insert_result.inserted_id

        record_audit_log(email, "Registered new account", {"user_id": insert_result.inserted_id})

        return (
            jsonify(
                {
                    "status": "success",
                    "access_token": create_access_token(identity=email),
                    "data": {"user": serialize_user(user_document, admin_email())},
                }
            ),
            201,
        )

    @app.route("/api/v1/users/login", methods=["POST"])
    def login():
        payload = request.get_json(silent=True) or {}
        email = normalize_email(payload.get("email"))
        password = str(payload.get("password", ""))

        if not email or not password:
            return error_response("Email and password are required.", 400)

        user = db.users.find_one({"email": email})
        if not user or not bcrypt.checkpw(password.encode("utf-8"), user["password"]):
            return error_response("Invalid credentials", 401)

        record_audit_log(
            email,
            "Signed in",
            {"ip": request.headers.get("X-Forwarded-For", request.remote_addr)},
        )

        return jsonify(
            {
                "status": "success",
                "access_token": create_access_token(identity=email),
                "data": {"user": serialize_user(user, admin_email())},
            }
        )

    @app.route("/api/v1/users/me", methods=["GET"])
    @jwt_required()
    def current_account():
        current_user, _, user_error = load_current_user()
        if user_error:
            return user_error
        return jsonify(
            {"status": "success", "data": {"user": serialize_user(current_user, admin_email())}}
        )

    # Orders
    @app.route("/api/v1/orders", methods=["GET"])
    @jwt_required()
    def list_orders():
        _, admin_error = require_admin_user()
        if admin_error:
            return admin_error
        documents = list_documents(db.orders, request.args)
        orders = [expand_order_references(db, document) for document in documents]
        return jsonify(format_list_response("orders", orders))

    @app.route("/api/v1/orders", methods=["POST"])
    @jwt_required()
    def create_order_route():
        current_user, is_admin, user_error = load_current_user()
        if user_error:
            return user_error

        payload = normalize_order_form(read_request_payload())
        uploads, upload_error = save_uploads(
            request.files, app.config["PUBLIC_ROOT"], ORDER_UPLOAD_FIELDS
        )
        if upload_error:
            return error_response(upload_error, 400)

        try:
            order_document, order_error = create_order(
                db,
                payload,
                current_user,
                is_admin=is_admin,
                uploads=uploads,
                estimated_delivery_days=app.config["ESTIMATED_DELIVERY_DAYS"],
                logo_surcharge=app.config["LOGO_SURCHARGE"],
            )
        except PyMongoError:
            remove_uploads(uploads)
            raise

        if order_error:
            remove_uploads(uploads)
            return error_response(*order_error)

        record_audit_log(
            current_user.get("email"),
            "Created order",
            {"order_id": order_document["_id"], "total": order_document.get("total")},
        )

        return jsonify(format_order_response(order_document, creation_message(order_document))), 201

    @app.route("/api/v1/orders/my-orders", methods=["GET"])
    @jwt_required()
    def my_orders():
        current_user, _, user_error = load_current_user()
        if user_error:
            return user_error
        orders = get_my_orders(db, current_user, request.args)
        return jsonify(format_list_response("orders", orders))

    @app.route("/api/v1/orders/delivery-options", methods=["GET"])
    def delivery_options():
        return jsonify(
            {
                "status": "success",
                "data": {
                    "countries": [
                        {"code": country, "cities": get_valid_cities(country)}
                        for country in get_valid_countries()
                    ]
                },
            }
        )

    @app.route("/api/v1/orders/customer/<customer_id>", methods=["GET"])
    @jwt_required()
    def customer_orders(customer_id: str):
        current_user, is_admin, user_error = load_current_user()
        if user_error:
            return user_error
        orders, orders_error = get_customer_orders(
            db, customer_id, current_user, is_admin=is_admin
        )
        if orders_error:
            return error_response(*orders_error)
        return jsonify(format_list_response("orders", orders))

    @app.route("/api/v1/orders/<order_id>", methods=["GET"])
    @jwt_required()
    def get_order(order_id: str):
        current_user, is_admin, user_error = load_current_user()
        if user_error:
            return user_error
        order_document, order_error = get_order_for_user(
            db, order_id, current_user, is_admin=is_admin
        )
        if order_error:
            return error_response(*order_error)
        return jsonify({"status": "success", "data": {"order": serialize_document(order_document)}})

    @app.route("/api/v1/orders/<order_id>", methods=["PATCH"])
    @jwt_required()
    def update_order_route(order_id: str):
        current_user, is_admin, user_error = load_current_user()
        if user_error:
            return user_error

        payload = normalize_order_form(read_request_payload())
        uploads, upload_error = save_uploads(
            request.files, app.config["PUBLIC_ROOT"], ORDER_UPLOAD_FIELDS
        )
        if upload_error:
            return error_response(upload_error, 400)

        try:
            previous_order, _ = get_document(db.orders, order_id, "order")
            order_document, order_error = update_order(
                db,
                order_id,
                payload,
                current_user,
                is_admin=is_admin,
                uploads=uploads,
                logo_surcharge=app.config["LOGO_SURCHARGE"],
            )
        except PyMongoError:
            remove_uploads(uploads)
            raise

        if order_error:
            remove_uploads(uploads)
            return error_response(*order_error)

        previous_logo = ((previous_order or {}).get("cardDesign") or {}).get("companyLogo")
        current_logo = (order_document.get("cardDesign") or {}).get("companyLogo")
        if previous_logo and previous_logo != current_logo:
            discard_public_file(previous_logo, "companyLogo")

        record_audit_log(
            current_user.get("email"), "Updated order", {"order_id": order_document["_id"]}
        )
        return jsonify(format_order_response(order_document, "Order updated successfully"))

    @app.route("/api/v1/orders/<order_id>/status", methods=["PATCH"])
    @jwt_required()
    def update_order_status_route(order_id: str):
        admin_user, admin_error = require_admin_user()
        if admin_error:
            return admin_error

        result, status_error = change_order_status(db, order_id, read_request_payload())
        if status_error:
            return error_response(*status_error)

        order_document, summary, message = result
        record_audit_log(
            admin_user.get("email"),
            "Changed order status",
            {"order_id": order_document["_id"], "status": order_document.get("status")},
        )
        return jsonify(format_order_response(order_document, message, summary=summary))

    @app.route("/api/v1/orders/<order_id>", methods=["DELETE"])
    @jwt_required()
    def delete_order_route(order_id: str):
        admin_user, admin_error = require_admin_user()
        if admin_error:
            return admin_error

        order_document, delete_error = delete_document(db.orders, order_id, "order")
        if delete_error:
            return error_response(*delete_error)

        discard_public_file(
            (order_document.get("cardDesign") or {}).get("companyLogo"), "companyLogo"
        )
        record_audit_log(admin_user.get("email"), "Deleted order", {"order_id": order_id})
        return "", 204

    # Products
    @app.route("/api/v1/products", methods=["GET"])
    def list_products():
        products = list_documents(db.products, request.args)
        return jsonify(format_list_response("products", products))

    @app.route("/api/v1/products/top-5-expensive", methods=["GET"])
    def top_expensive_products():
        products = list(db.products.find().sort([("price", -1), ("_id", -1)]).limit(5))
        return jsonify(format_list_response("products", products))

    @app.route("/api/v1/products/cheap-products", methods=["GET"])
    def cheap_products():
        products = list(db.products.find().sort([("price", 1), ("_id", -1)]).limit(5))
        return jsonify(format_list_response("products", products))

    @app.route("/api/v1/products/product-stats", methods=["GET"])
    def product_stats():
        return jsonify({"status": "success", "data": {"stats": product_price_stats(db.products)}})

    @app.route("/api/v1/products/price-range", methods=["GET"])
    def products_by_price_range():
        try:
            min_price = float(request.args.get("min", 0))
            max_price = float(request.args.get("max", "inf"))
        except (TypeError, ValueError):
            return error_response("Price range values must be valid numbers.", 400)
        if min_price > max_price:
            return error_response("Minimum price cannot exceed the maximum price.", 400)

        price_filter: Dict[str, float] = {"$gte": min_price}
        if max_price != float("inf"):
            price_filter["$lte"] = max_price
        products = list(db.products.find({"price": price_filter}).sort("price", 1))
        return jsonify(format_list_response("products", products))

    @app.route("/api/v1/products/color/<color>", methods=["GET"])
    def products_by_color(color: str):
        normalized_color = color.strip().lower()
        if not is_valid_color(normalized_color):
            return error_response("Please provide a valid color name or hex code", 400)
        products = list(
            db.products.find({"colors": normalized_color}).sort([("createdAt", -1), ("_id", -1)])
        )
        return jsonify(format_list_response("products", products))

    @app.route("/api/v1/products/my-products", methods=["GET"])
    @jwt_required()
    def my_products():
        current_user, _, user_error = load_current_user()
        if user_error:
            return user_error
        products = list_documents(
            db.products, request.args, {"createdBy": current_user["_id"]}
        )
        return jsonify(format_list_response("products", products))

    @app.route("/api/v1/products", methods=["POST"])
    @jwt_required()
    def create_product():
        current_user, _, user_error = load_current_user()
        if user_error:
            return user_error

        payload = read_request_payload()
        product_fields, validation_error = validate_product_payload(payload)
        if validation_error:
            return error_response(validation_error, 400)

        uploads, upload_error = save_uploads(
            request.files, app.config["PUBLIC_ROOT"], PRODUCT_UPLOAD_FIELDS
        )
        if upload_error:
            return error_response(upload_error, 400)

        uploaded_paths = [
            relative_file_path(stored_file)
            for field in PRODUCT_UPLOAD_FIELDS
            for stored_file in uploads.get(field, [])
        ]
        timestamp = datetime.utcnow()
        product_document = {
            **product_fields,
            "images": ensure_default_image(
                normalize_images(product_fields.get("images", []) + uploaded_paths)
            ),
            "createdBy": current_user["_id"],
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }

        try:
            result = db.products.insert_one(product_document)
        except PyMongoError:
            remove_uploads(uploads)
            raise
        created_product = db.products.find_one({"_id": result.inserted_id})

        record_audit_log(
            current_user.get("email"),
            "Created product",
            {"product_id": result.inserted_id, "product_title": product_fields["title"]},
        )
        return product_response(created_product, "Product added successfully.", 201)

    @app.route("/api/v1/products/<product_id>", methods=["GET"])
    def get_product(product_id: str):
        product_document, load_error = get_document(db.products, product_id, "product")
        if load_error:
            return error_response(*load_error)
        return jsonify({"status": "success", "data": {"product": serialize_document(product_document)}})

    @app.route("/api/v1/products/<product_id>", methods=["PATCH"])
    @jwt_required()
    def update_product(product_id: str):
        product_document, current_user, load_error = load_managed_product(product_id)
        if load_error:
            return load_error

        payload = read_request_payload()
        updates, validation_error = validate_product_payload(payload, partial=True)
        if validation_error:
            return error_response(validation_error, 400)

        uploads, upload_error = save_uploads(
            request.files, app.config["PUBLIC_ROOT"], PRODUCT_UPLOAD_FIELDS
        )
        if upload_error:
            return error_response(upload_error, 400)

        uploaded_paths = [
            relative_file_path(stored_file)
            for field in PRODUCT_UPLOAD_FIELDS
            for stored_file in uploads.get(field, [])
        ]
        if "images" in updates or uploaded_paths:
            base_images = updates.get("images", product_document.get("images") or [])
            updates["images"] = add_images(base_images, uploaded_paths)

        if not updates:
            return error_response("No product changes detected.", 400)

        try:
            updated_product = save_product_changes(product_document, updates)
        except PyMongoError:
            remove_uploads(uploads)
            raise

        record_audit_log(
            current_user.get("email"), "Updated product", {"product_id": product_document["_id"]}
        )
        return product_response(updated_product, "Product updated successfully.")

    @app.route("/api/v1/products/<product_id>", methods=["DELETE"])
    @jwt_required()
    def delete_product(product_id: str):
        product_document, current_user, load_error = load_managed_product(product_id)
        if load_error:
            return load_error

        _, delete_error = delete_document(db.products, product_id, "product")
        if delete_error:
            return error_response(*delete_error)

        for image in product_document.get("images") or []:
            discard_public_file(image, "images")

        record_audit_log(
            current_user.get("email"),
            "Deleted product",
            {"product_id": product_document["_id"], "product_title": product_document.get("title")},
        )
        return "", 204

    @app.route("/api/v1/products/<product_id>/colors/add", methods=["PATCH"])
    @jwt_required()
    def add_product_color(product_id: str):
        product_document, _, load_error = load_managed_product(product_id)
        if load_error:
            return load_error

        color = str((request.get_json(silent=True) or {}).get("color") or "").strip().lower()
        if not color or not is_valid_color(color):
            return error_response("Please provide a valid color name or hex code", 400)

        updated_product = save_product_changes(
            product_document, {"colors": add_color(product_document.get("colors"), color)}
        )
        return product_response(updated_product, f"Color '{color}' added to product.")

    @app.route("/api/v1/products/<product_id>/colors/remove", methods=["PATCH"])
    @jwt_required()
    def remove_product_color(product_id: str):
        product_document, _, load_error = load_managed_product(product_id)
        if load_error:
            return load_error

        color = str((request.get_json(silent=True) or {}).get("color") or "").strip().lower()
        if not color:
            return error_response("Please provide a color to remove.", 400)

        updated_product = save_product_changes(
            product_document, {"colors": remove_color(product_document.get("colors"), color)}
        )
        return product_response(updated_product, f"Color '{color}' removed from product.")

    @app.route("/api/v1/products/<product_id>/images/add", methods=["PATCH"])
    @jwt_required()
    def add_product_images(product_id: str):
        product_document, _, load_error = load_managed_product(product_id)
        if load_error:
            return load_error

        payload = read_request_payload()
        uploads, upload_error = save_uploads(
            request.files, app.config["PUBLIC_ROOT"], PRODUCT_UPLOAD_FIELDS
        )
        if upload_error:
            return error_response(upload_error, 400)

        new_images = normalize_images(payload.get("images") or payload.get("imageUrl"))
        new_images.extend(
            relative_file_path(stored_file)
            for field in PRODUCT_UPLOAD_FIELDS
            for stored_file in uploads.get(field, [])
        )
        if not new_images:
            return error_response("Please provide an image to add.", 400)

        updated_product = save_product_changes(
            product_document,
            {"images": add_images(product_document.get("images"), new_images)},
        )
        return product_response(updated_product, "Images added to product.")

    @app.route("/api/v1/products/<product_id>/images/remove", methods=["PATCH"])
    @jwt_required()
    def remove_product_image(product_id: str):
        product_document, _, load_error = load_managed_product(product_id)
        if load_error:
            return load_error

        image = str((request.get_json(silent=True) or {}).get("imageUrl") or "").strip()
        if not image:
            return error_response("Please provide the image to remove.", 400)

        updated_product = save_product_changes(
            product_document,
            {"images": remove_image(product_document.get("images"), image)},
        )
        if image in (product_document.get("images") or []):
            discard_public_file(image, "images")
        return product_response(updated_product, "Image removed from product.")

    return app
