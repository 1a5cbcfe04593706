import json
import logging
from typing import Any, Dict, Optional

from appwrite.client import Client
from appwrite.exception import AppwriteException
from appwrite.services.functions import Functions

from gradetrackr.config.settings import settings


logger = logging.getLogger(__name__)


class FunctionServiceError(Exception):
    pass


class FunctionsService:
    """Synchronous executions of Appwrite Functions with a JSON body."""

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        api_key: str,
        functions: Optional[Functions] = None,
    ) -> None:
        if functions is None:
            if not endpoint:
                raise FunctionServiceError("Missing APPWRITE_ENDPOINT in environment")
            if not project_id:
                raise FunctionServiceError("Missing APPWRITE_PROJECT_ID in environment")
            client = Client()
            client.set_endpoint(endpoint.rstrip("/"))
            client.set_project(project_id)
            if api_key:
                client.set_key(api_key)
            functions = Functions(client)
        self.functions = functions

    @classmethod
    def from_settings(cls) -> "FunctionsService":
        return cls(
            endpoint=settings.appwrite_endpoint,
            project_id=settings.appwrite_project_id,
            api_key=settings.appwrite_api_key,
        )

    def execute(self, function_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            execution = self.functions.create_execution(function_id, body=json.dumps(payload))
        except AppwriteException as exc:
            logger.error("Execution of %s failed: %s", function_id, exc)
            raise FunctionServiceError(str(exc)) from exc

        raw_body = execution.get("responseBody") or ""
        try:
            data = json.loads(raw_body) if raw_body else {}
        except ValueError:
            data = {}

        status_code = int(execution.get("responseStatusCode") or 0)
        if execution.get("status") == "failed" or status_code >= 400:
            message = ""
            if isinstance(data, dict):
                message = str(data.get("error") or data.get("message") or "")
            message = message or str(execution.get("errors") or "") or f"Function {function_id} failed"
            logger.warning("Function %s returned %s: %s", function_id, status_code, message)
            raise FunctionServiceError(message)

        return data if isinstance(data, dict) else {"result": data}
