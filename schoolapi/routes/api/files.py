"""File upload routes"""

import logging

from flask import current_app, jsonify, request
from flask_jwt_extended import current_user, jwt_required

from schoolapi.errors import NotAllowed, TaskNotFound
from schoolapi.routes.api import endpoints, error
from schoolapi.services import FileService
from schoolapi.validators import validate_file

logger = logging.getLogger()


@endpoints.route("/files", strict_slashes=False, methods=["POST"])
@jwt_required()
@validate_file
def upload_file():
    """
    Upload a file, optionally as a task submission.

    **Request** (`multipart/form-data`):
    - `file`: the file (.pdf, .doc, .docx, .jpg or .png, at most 5MB)
    - `taskId`: submit the file for this task (students only)
    """
    logger.info("[ROUTER]: Uploading file")
    upload = request.files["file"]
    upload.seek(0, 2)
    size = upload.tell()
    upload.seek(0)
    try:
        file_record, submission = FileService.upload_file(
            upload,
            size,
            current_user,
            current_app.extensions["file_store"],
            task_id=request.form.get("taskId"),
        )
    except TaskNotFound as e:
        logger.error("[ROUTER]: " + e.message)
        return error(status=400, detail=e.message)
    except NotAllowed as e:
        logger.error("[ROUTER]: " + e.message)
        return error(status=403, detail=e.message)
    except Exception as e:
        logger.error("[ROUTER]: " + str(e))
        return error(status=500, detail="Generic Error")

    data = file_record.serialize()
    if submission is not None:
        data["submission"] = submission.serialize()
    return jsonify(data=data), 201


@endpoints.route("/files", strict_slashes=False, methods=["GET"])
@jwt_required()
def get_files():
    """
    Uploaded files, newest first.

    **Access**: students only see their own uploads

    **Query Parameters**:
    - `uploadedBy`: only files uploaded by this user
    """
    logger.info("[ROUTER]: Getting files")
    uploaded_by = request.args.get("uploadedBy")
    if current_user.role == "STUDENT":
        uploaded_by = str(current_user.id)
    files = FileService.get_files(uploaded_by=uploaded_by)
    return jsonify(data=[f.serialize() for f in files]), 200
