"""FILE SERVICE"""

import datetime
import logging

import rollbar

from schoolapi import db
from schoolapi.errors import NotAllowed
from schoolapi.models import TaskSubmission, UploadedFile, as_uuid
from schoolapi.services.task_service import TaskService

logger = logging.getLogger()


class FileService:
    """File Class"""

    @staticmethod
    def upload_file(upload, size, user, store, task_id=None):
        """Store an upload and, with ``task_id``, submit it for that task.

        Returns the file record and the submission (None without a task).
        """
        logger.info("[SERVICE]: Uploading file")
        task = None
        if task_id:
            task = TaskService.get_task(task_id)
            if user.role != "STUDENT":
                raise NotAllowed(message="Only students can submit tasks")

        name = store.unique_name(upload.filename)
        store.save(upload, name)
        file_record = UploadedFile(
            name=name,
            original_name=upload.filename,
            mime_type=upload.mimetype,
            size=size,
            uploaded_by=user.id,
        )
        submission = None
        try:
            logger.info("[DB]: ADD")
            db.session.add(file_record)
            db.session.flush()
            if task is not None:
                submission = FileService._submit(task, user, file_record)
            db.session.commit()
        except Exception as error:
            db.session.rollback()
            store.delete(name)
            rollbar.report_exc_info()
            raise error
        return file_record, submission

    @staticmethod
    def _submit(task, student, file_record):
        now = datetime.datetime.utcnow()
        submission = TaskSubmission.query.filter_by(
            task_id=task.id, student_id=student.id
        ).first()
        if submission is None:
            submission = TaskSubmission(task_id=task.id, student_id=student.id)
            db.session.add(submission)
        submission.content = f"Uploaded file: {file_record.original_name}"
        submission.file_id = file_record.id
        submission.submitted_at = now
        submission.is_late = task.is_overdue(now)
        return submission

    @staticmethod
    def get_files(uploaded_by=None):
        logger.info("[SERVICE]: Getting files")
        logger.info("[DB]: QUERY")
        query = UploadedFile.query
        if uploaded_by:
            uploader_uuid = as_uuid(uploaded_by)
            if uploader_uuid is None:
                return []
            query = query.filter_by(uploaded_by=uploader_uuid)
        return query.order_by(UploadedFile.created_at.desc()).all()
