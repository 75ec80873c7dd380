from .reader import UploadError, read_csv_text, read_excel_upload, read_upload_file

__all__ = [
    "UploadError",
    "read_csv_text",
    "read_excel_upload",
    "read_upload_file",
]
