import pytest

import app as app_module


def test_public_root_must_be_named_public(tmp_path):
    with pytest.raises(RuntimeError, match="PUBLIC_ROOT"):
        app_module.create_app({"PUBLIC_ROOT": str(tmp_path / "public" / "static")})


def test_public_root_uploads_directory_is_created(app, public_root):
    assert app.config["PUBLIC_ROOT"] == str(public_root)
    assert (public_root / "uploads").is_dir()
