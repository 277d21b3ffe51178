import csv
import io
import json
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import List, Optional

import requests

from . import config

logger = logging.getLogger("escape_room.client")

REQUEST_TIMEOUT = 10
FAILED_SUBMISSIONS_FILE = "failed_submissions.json"

FAILED_CSV_HEADERS = [
    "Name", "Email", "Company", "Role", "Phone",
    "Completed At", "Completion Time (s)", "Levels Completed",
    "Hints Used", "Total Attempts", "Source", "Event", "Failed At",
]


class ApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        state_dir: Optional[str] = None,
        session: Optional[requests.Session] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.base_url = (config.CLIENT_API_ENDPOINT if base_url is None else base_url).rstrip("/")
        self.api_key = config.CLIENT_API_KEY if api_key is None else api_key
        self.state_dir = state_dir or config.CLIENT_STATE_DIR
        self.session = session or requests.Session()
        self.executor = executor or ThreadPoolExecutor(max_workers=2)
        self.failed_path = os.path.join(self.state_dir, FAILED_SUBMISSIONS_FILE)

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _post(self, path: str, payload: dict) -> requests.Response:
        return self.session.post(
            f"{self.base_url}{path}",
            json=payload,
            headers=self._headers(),
            timeout=REQUEST_TIMEOUT,
        )

    # --- Score sync ---

    def _post_score(self, snapshot: dict) -> Optional[dict]:
        try:
            response = self._post("/api/scores", snapshot)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Score sync failed for {snapshot.get('email')}: {e}")
            return None

    def sync_score(self, snapshot: dict) -> Optional[Future]:
        """Send the full score snapshot in the background. Never raises."""
        if not self.configured:
            logger.debug("API endpoint not configured, skipping score sync")
            return None
        return self.executor.submit(self._post_score, snapshot)

    # --- Leads ---

    def submit_lead(self, lead: dict) -> dict:
        if not self.configured:
            logger.warning("API endpoint not configured. Storing lead locally.")
            self.save_failed_submission(lead)
            return {"success": False, "error": "API not configured"}

        try:
            response = self._post("/api/leads", lead)
            if not response.ok:
                raise requests.HTTPError(f"Lead submission failed: {response.status_code}", response=response)
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Lead submission error: {e}")
            self.save_failed_submission(lead)
            return {"success": False, "error": str(e)}

    def get_failed_submissions(self) -> List[dict]:
        if not os.path.exists(self.failed_path):
            return []
        try:
            with open(self.failed_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Could not read failed submissions: {e}")
            return []
        return data if isinstance(data, list) else []

    def _write_failed(self, submissions: List[dict]) -> None:
        os.makedirs(self.state_dir, exist_ok=True)
        with open(self.failed_path, "w", encoding="utf-8") as f:
            json.dump(submissions, f, indent=2)

    def save_failed_submission(self, lead: dict) -> None:
        submissions = self.get_failed_submissions()
        submissions.append({**lead, "failedAt": datetime.now(timezone.utc).isoformat()})
        try:
            self._write_failed(submissions)
        except OSError as e:
            logger.error(f"Failed to save submission locally: {e}")

    def clear_failed_submissions(self) -> None:
        if os.path.exists(self.failed_path):
            os.remove(self.failed_path)

    def retry_failed_submissions(self) -> int:
        """Re-post every queued lead. Returns how many went through."""
        failed = self.get_failed_submissions()
        if not failed or not self.configured:
            return 0

        success_count = 0
        still_failed = []
        for submission in failed:
            lead = {k: v for k, v in submission.items() if k != "failedAt"}
            try:
                response = self._post("/api/leads", lead)
            except requests.RequestException as e:
                logger.warning(f"Retry failed for {lead.get('email')}: {e}")
                still_failed.append(submission)
                continue

            if response.ok:
                success_count += 1
            else:
                still_failed.append(submission)

        self._write_failed(still_failed)
        logger.info(f"Retried {len(failed)} lead(s): {success_count} submitted, {len(still_failed)} still queued")
        return success_count

    def export_failed_as_csv(self) -> str:
        failed = self.get_failed_submissions()
        if not failed:
            return ""

        buffer = io.StringIO()
        csv.writer(buffer, lineterminator="\n").writerow(FAILED_CSV_HEADERS)
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        for lead in failed:
            writer.writerow([
                lead.get("name", ""),
                lead.get("email", ""),
                lead.get("company", ""),
                lead.get("role") or "",
                lead.get("phone") or "",
                lead.get("completedAt", ""),
                lead.get("completionTime", 0),
                lead.get("levelsCompleted", 0),
                lead.get("hintsUsed", 0),
                lead.get("totalAttempts", 0),
                lead.get("source", ""),
                lead.get("event") or "",
                lead.get("failedAt", ""),
            ])
        return buffer.getvalue().rstrip("\n")

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
