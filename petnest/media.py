"""Image storage for post, profile and product pictures.

Files land in ``UPLOAD_FOLDER`` and are served under ``UPLOAD_URL_PREFIX``.
Only URLs issued by the store are ever deleted; externally hosted image
links pass through untouched.
"""
from __future__ import annotations

import logging
import os
import uuid

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from .errors import ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}


def allowed_file(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


class MediaStore:
    def __init__(self, app=None) -> None:
        self.folder: str | None = None
        self.url_prefix = "/static/uploads"
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.folder = app.config["UPLOAD_FOLDER"]
        self.url_prefix = app.config.get("UPLOAD_URL_PREFIX", self.url_prefix).rstrip("/")
        os.makedirs(self.folder, exist_ok=True)
        app.extensions["media"] = self

    def save(self, file: FileStorage, prefix: str = "img") -> str:
        filename = secure_filename(file.filename or "")
        if not filename or not allowed_file(filename):
            raise ValidationFailed("Images only (png, jpg, jpeg, gif, webp).")
        ext = filename.rsplit(".", 1)[1].lower()
        unique = f"{prefix}_{uuid.uuid4().hex}.{ext}"
        file.save(os.path.join(self.folder, unique))
        logger.debug("Stored image %s", unique)
        return f"{self.url_prefix}/{unique}"

    def owns(self, url: str | None) -> bool:
        return bool(url) and url.startswith(self.url_prefix + "/")

    def path_for(self, url: str) -> str:
        name = url[len(self.url_prefix) + 1 :]
        return os.path.join(self.folder, secure_filename(name))

    def delete(self, url: str | None) -> bool:
        if not self.owns(url):
            return False
        path = self.path_for(url)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.warning("Image already gone: %s", url)
            return False
        logger.debug("Deleted image %s", url)
        return True
