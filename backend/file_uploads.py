import logging
import os
import posixpath
import random
import time
from dataclasses import dataclass
from pathlib import PurePath
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
UPLOAD_SUBDIRECTORIES = {
    "images": "images",
    "image": "images",
    "documents": "documents",
    "companyLogo": "companyLogo",
}
DEFAULT_UPLOAD_SUBDIRECTORY = "general"
PUBLIC_SEGMENT = "public"


@dataclass(frozen=True)
class StoredFile:
    field_name: str
    filename: str
    path: str


def allowed_image_extension(filename: str) -> bool:
    extension = os.path.splitext(filename)[1].lower().lstrip(".")
    if not extension:
        return False
    return extension in ALLOWED_IMAGE_EXTENSIONS


def upload_directory(public_root: str, field_name: str) -> str:
    subdirectory = UPLOAD_SUBDIRECTORIES.get(field_name, DEFAULT_UPLOAD_SUBDIRECTORY)
    return os.path.join(public_root, "uploads", subdirectory)


def build_unique_filename(original_filename: str) -> str:
    base_name, extension = os.path.splitext(original_filename)
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{base_name or 'upload'}-{unique_suffix}{extension}"


def save_upload(
    upload, field_name: str, public_root: str
) -> Tuple[Optional[StoredFile], Optional[str]]:
    if not upload or not getattr(upload, "filename", ""):
        return None, "An upload file is required."

    original_filename = secure_filename(upload.filename)
    if not original_filename:
        return None, "Please choose a valid file name."

    if not allowed_image_extension(original_filename):
        return None, "Only image files are allowed (jpeg, jpg, png, gif, webp)"

    destination_directory = upload_directory(public_root, field_name)
    os.makedirs(destination_directory, exist_ok=True)

    unique_filename = build_unique_filename(original_filename)
    destination = os.path.join(destination_directory, unique_filename)

    try:
        upload.save(destination)
    except OSError as exc:
        logger.error("Unable to store upload %s: %s", unique_filename, exc)
        return None, "We could not store the uploaded file. Please try again."

    return StoredFile(field_name, unique_filename, destination), None


def save_uploads(
    files, public_root: str, allowed_fields: Optional[Iterable[str]] = None
) -> Tuple[Dict[str, List[StoredFile]], Optional[str]]:
    """Store every part of a multipart file mapping, all or nothing."""
    stored: Dict[str, List[StoredFile]] = {}
    if not files:
        return stored, None

    field_names = list(files.keys())
    if allowed_fields is not None:
        unexpected = [name for name in field_names if name not in allowed_fields]
        if unexpected:
            return {}, f"Unexpected file field '{unexpected[0]}'"

    for field_name in field_names:
        for upload in files.getlist(field_name):
            if not upload or not getattr(upload, "filename", ""):
                continue
            stored_file, upload_error = save_upload(upload, field_name, public_root)
            if upload_error:
                remove_uploads(stored)
                return {}, upload_error
            stored.setdefault(field_name, []).append(stored_file)

    return stored, None


def relative_file_path(stored_file: Optional[StoredFile]) -> Optional[str]:
    if not stored_file:
        return None

    parts = PurePath(stored_file.path).parts
    if PUBLIC_SEGMENT not in parts:
        return stored_file.filename

    last_public = len(parts) - 1 - parts[::-1].index(PUBLIC_SEGMENT)
    remainder = parts[last_public + 1 :]
    return "/" + "/".join(remainder)


def iter_stored_files(
    uploads: Union[StoredFile, Mapping[str, Iterable[StoredFile]], None]
) -> List[StoredFile]:
    if not uploads:
        return []
    if isinstance(uploads, StoredFile):
        return [uploads]
    collected: List[StoredFile] = []
    for entries in uploads.values():
        collected.extend(entry for entry in entries if entry)
    return collected


def resolve_order_files(
    uploads: Union[StoredFile, Mapping[str, List[StoredFile]], None],
    card_design: Optional[Dict],
) -> Optional[Dict]:
    """Return the card design with the uploaded company logo path filled in."""
    logo_file = None
    if isinstance(uploads, StoredFile):
        if uploads.field_name == "companyLogo":
            logo_file = uploads
    elif uploads:
        logo_files = uploads.get("companyLogo") or []
        if logo_files:
            logo_file = logo_files[0]

    if not logo_file:
        return card_design

    resolved = dict(card_design or {})
    resolved["companyLogo"] = relative_file_path(logo_file)
    return resolved


def remove_uploads(uploads) -> None:
    for stored_file in iter_stored_files(uploads):
        try:
            os.remove(stored_file.path)
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Unable to remove orphaned upload %s: %s", stored_file.path, exc)
            continue
        logger.info("Removed orphaned upload %s", stored_file.path)


def is_upload_path(relative_path: Optional[str], subdirectory: str) -> bool:
    """True for a normalized ``/uploads/<subdirectory>/<file>`` path."""
    if not relative_path:
        return False
    candidate = str(relative_path)
    if posixpath.normpath(candidate) != candidate:
        return False
    return candidate.startswith(f"/uploads/{subdirectory}/")


def remove_public_file(public_root: str, relative_path: Optional[str]) -> None:
    if not relative_path:
        return
    candidate = os.path.normpath(
        os.path.join(public_root, str(relative_path).lstrip("/\\"))
    )
    root = os.path.normpath(public_root)
    if not candidate.startswith(root + os.sep):
        return
    try:
        os.remove(candidate)
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.warning("Unable to remove stored file %s: %s", candidate, exc)
