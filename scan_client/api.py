import logging
from typing import Optional
from urllib.parse import urljoin

import requests

from . import config

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response or transport failure talking to the document service."""

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(f"{status_code}: {message}" if status_code else message)
        self.status_code = status_code
        self.message = message


class DocumentClient:
    """Thin requests wrapper over the document service HTTP API."""

    def __init__(self, base_url: str = config.SCAN_API_URL, session: Optional[requests.Session] = None,
                 timeout: int = config.REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def url_for(self, path: str) -> str:
        """Resolve a service-relative path such as a document's fileUrl."""
        return urljoin(self.base_url + "/", path.lstrip("/"))

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self.url_for(path)
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {url} failed: {str(e)}")
            raise ApiError(None, f"Could not reach document service: {str(e)}") from e
        if not resp.ok:
            try:
                message = resp.json().get("message", resp.text)
            except ValueError:
                message = resp.text
            logger.error(f"{method} {url} returned {resp.status_code}: {message}")
            raise ApiError(resp.status_code, message)
        return resp

    def upload_image(self, data: bytes, filename: str, content_type: str) -> dict:
        resp = self._request("POST", "/upload", files={"file": (filename, data, content_type)})
        return resp.json()

    def delete_upload(self, object_key: str) -> dict:
        return self._request("DELETE", f"/upload/{object_key}").json()

    def fetch_upload(self, object_key: str) -> bytes:
        return self._request("GET", f"/uploads/{object_key}").content

    def create_document(self, user_id: str, object_key: str, extracted_text: str) -> dict:
        payload = {"userId": user_id, "objectKey": object_key, "extractedText": extracted_text}
        return self._request("POST", "/document", json=payload).json()

    def list_documents(self, user_id: str) -> list:
        return self._request("GET", "/document", params={"userId": user_id}).json()

    def get_document(self, doc_id: str) -> dict:
        return self._request("GET", f"/document/{doc_id}").json()

    def update_document(self, doc_id: str, extracted_text: str) -> dict:
        return self._request("PUT", f"/document/{doc_id}", json={"extractedText": extracted_text}).json()

    def delete_document(self, doc_id: str) -> dict:
        return self._request("DELETE", f"/document/{doc_id}").json()
