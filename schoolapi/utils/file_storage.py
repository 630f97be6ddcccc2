"""Storage for uploaded file bodies"""

import logging
import os
import uuid

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class FileStore:
    """Where uploaded files are kept.

    Services only hand over an uploaded ``FileStorage`` and get back the name
    under which it was stored; the record in the database keeps that name.
    """

    def save(self, upload, name):
        raise NotImplementedError

    def open(self, name):
        raise NotImplementedError

    def delete(self, name):
        raise NotImplementedError

    @staticmethod
    def unique_name(original_name):
        """Unique, filesystem safe name for an upload."""
        return f"{uuid.uuid4().hex}_{secure_filename(original_name) or 'upload'}"


class LocalFileStore(FileStore):
    """Files kept in one directory on local disk."""

    def __init__(self, root):
        self.root = root

    def _path(self, name):
        if name != os.path.basename(name):
            raise ValueError(f"Invalid stored file name: {name}")
        return os.path.join(self.root, name)

    def save(self, upload, name):
        path = self._path(name)
        if not os.path.exists(self.root):
            os.makedirs(self.root)
        logger.info(f"[STORAGE]: Saving {name}")
        upload.save(path)
        return name

    def open(self, name):
        return open(self._path(name), "rb")

    def delete(self, name):
        path = self._path(name)
        if os.path.exists(path):
            logger.info(f"[STORAGE]: Deleting {name}")
            os.remove(path)
