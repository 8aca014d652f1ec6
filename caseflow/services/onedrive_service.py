"""OneDrive store — case folders, uploads and listings on a single drive.

All calls use the app's client-credentials token against one drive owner
(settings.onedrive_user_id). Case folders live at /Leads/Lead_<number>;
older cases may still sit under /Documents/Leads/, and some were filed under
the C-prefixed twin of their number. ensure_lead_folder() finds whichever
exists before creating anything, so each case keeps one canonical folder.

Called by: routers/files.py
Depends on: utils/graph_client.py, utils/file_validation.py
"""

import logging
from datetime import datetime, timezone
from urllib.parse import quote

from sqlalchemy.orm import Session

from ..database import commit_or_raise
from ..errors import GraphError, RemoteStoreError
from ..models import Lead
from ..utils.file_validation import sanitize_filename
from ..utils.graph_client import GraphClient

log = logging.getLogger("caseflow.onedrive")

LEADS_ROOT = "Leads"
LEGACY_LEADS_ROOT = "Documents/Leads"
DOCUMENTS_ROOT = "Documents"
EMAIL_ATTACHMENTS_ROOT = "Email_Attachments"


def lead_folder_name(lead_number: str) -> str:
    return f"Lead_{lead_number.strip().replace(' ', '_')}"


def alternate_lead_number(lead_number: str) -> str | None:
    """The L<->C prefix twin of a lead number, or None when it has neither prefix."""
    n = lead_number.strip()
    if n[:1] == "L":
        return "C" + n[1:]
    if n[:1] == "C":
        return "L" + n[1:]
    return None


def _quote_path(path: str) -> str:
    return "/".join(quote(part) for part in path.strip("/").split("/"))


def normalize_file(item: dict) -> dict:
    """Drive item -> file row for the UI. downloadUrl falls back to webUrl."""
    return {
        "id": item.get("id"),
        "name": item.get("name"),
        "webUrl": item.get("webUrl"),
        "downloadUrl": item.get("@microsoft.graph.downloadUrl") or item.get("webUrl"),
        "lastModifiedDateTime": item.get("lastModifiedDateTime"),
        "size": item.get("size"),
        "file": {"mimeType": (item.get("file") or {}).get("mimeType")},
    }


class OneDriveStore:
    """Case document storage on one OneDrive drive."""

    def __init__(
        self,
        graph: GraphClient,
        drive_user_id: str,
        large_upload_threshold: int = 4 * 1024 * 1024,
        chunk_size: int = 320 * 1024,
    ):
        if not drive_user_id:
            raise RemoteStoreError("OneDrive drive owner is not configured")
        self.graph = graph
        self.drive = f"/users/{quote(drive_user_id)}/drive"
        self.large_upload_threshold = large_upload_threshold
        self.chunk_size = chunk_size

    # ── Folder resolution ───────────────────────────────────────────

    async def get_item_by_path(self, path: str) -> dict | None:
        """Drive item at a root-relative path, or None on 404. Other errors raise."""
        try:
            return await self.graph.get_json(f"{self.drive}/root:/{_quote_path(path)}")
        except GraphError as e:
            if e.is_not_found:
                return None
            raise

    async def create_folder(self, parent_path: str, name: str) -> dict:
        """Create a folder; if it already exists (409), return the existing one."""
        if parent_path:
            url = f"{self.drive}/root:/{_quote_path(parent_path)}:/children"
        else:
            url = f"{self.drive}/root/children"
        body = {"name": name, "folder": {}, "@microsoft.graph.conflictBehavior": "fail"}
        full_path = f"{parent_path}/{name}" if parent_path else name
        try:
            item = await self.graph.post_json(url, body)
            log.info("Created OneDrive folder /%s", full_path)
            return item
        except GraphError as e:
            if not e.is_conflict:
                raise
        # Lost the race: someone else created it
        item = await self.get_item_by_path(full_path)
        if not item:
            raise RemoteStoreError(f"Folder /{full_path} reported as existing but not found")
        return item

    async def ensure_folder(self, path: str) -> dict:
        """Find-or-create a folder path, creating missing parents."""
        item = await self.get_item_by_path(path)
        if item:
            return item
        parent, _, name = path.strip("/").rpartition("/")
        if parent:
            await self.ensure_folder(parent)
        return await self.create_folder(parent, name)

    async def ensure_lead_folder(self, lead_number: str) -> dict:
        """Resolve the case folder. First hit wins:

        1. /Leads/Lead_<number>, then the L<->C twin
        2. /Documents/Leads/Lead_<number>, then the twin
        3. create /Leads (if needed) and /Leads/Lead_<number>
        """
        if not lead_number or not lead_number.strip():
            raise RemoteStoreError("Lead number is required")
        names = [lead_folder_name(lead_number)]
        alt = alternate_lead_number(lead_number)
        if alt:
            names.append(lead_folder_name(alt))

        for root in (LEADS_ROOT, LEGACY_LEADS_ROOT):
            for name in names:
                item = await self.get_item_by_path(f"{root}/{name}")
                if item:
                    return item

        await self.ensure_folder(LEADS_ROOT)
        return await self.create_folder(LEADS_ROOT, names[0])

    async def create_shareable_link(self, folder_id: str) -> str | None:
        """Organization-scoped view link; None on failure."""
        try:
            data = await self.graph.post_json(
                f"{self.drive}/items/{folder_id}/createLink",
                {"type": "view", "scope": "organization"},
            )
        except RemoteStoreError as e:
            log.warning("createLink failed for %s, continuing without link: %s", folder_id, e)
            return None
        return (data.get("link") or {}).get("webUrl")

    # ── Uploads ─────────────────────────────────────────────────────

    async def _upload(self, item_path: str, content: bytes) -> dict:
        """Upload to an item address like '/users/x/drive/items/{id}:/name.pdf:'."""
        if len(content) <= self.large_upload_threshold:
            return await self.graph.put_bytes(
                f"{item_path}/content", content,
                headers={"Content-Type": "application/octet-stream"},
            )

        session = await self.graph.post_json(
            f"{item_path}/createUploadSession",
            {"item": {"@microsoft.graph.conflictBehavior": "replace"}},
        )
        upload_url = session.get("uploadUrl")
        if not upload_url:
            raise RemoteStoreError("Upload session has no uploadUrl")

        total = len(content)
        result: dict = {}
        for offset in range(0, total, self.chunk_size):
            chunk = content[offset:offset + self.chunk_size]
            end = offset + len(chunk) - 1
            result = await self.graph.put_bytes(
                upload_url, chunk,
                headers={
                    "Content-Length": str(len(chunk)),
                    "Content-Range": f"bytes {offset}-{end}/{total}",
                },
                authenticated=False,
                timeout=120,
            )
        log.info("Chunked upload finished (%d bytes)", total)
        return result

    def _child_path(self, folder_id: str, filename: str) -> str:
        return f"{self.drive}/items/{folder_id}:/{quote(filename)}:"

    async def upload_file(self, lead_number: str, filename: str, content: bytes) -> dict:
        """Upload into the case folder (overwrites a file of the same name)."""
        folder = await self.ensure_lead_folder(lead_number)
        name = sanitize_filename(filename)
        await self._upload(self._child_path(folder["id"], name), content)
        link = await self.create_shareable_link(folder["id"]) or folder.get("webUrl")
        log.info("Uploaded %s to case %s", name, lead_number)
        return {"success": True, "folderUrl": link, "folderId": folder["id"], "fileName": name}

    async def upload_email_attachment(self, filename: str, content: bytes) -> dict:
        name = sanitize_filename(filename)
        item_path = f"{self.drive}/root:/{EMAIL_ATTACHMENTS_ROOT}/{quote(name)}:"
        item = await self._upload(item_path, content)
        return {"success": True, "attachmentId": item.get("id"), "fileName": name}

    async def upload_general_document(self, folder_name: str, filename: str, content: bytes) -> dict:
        """Upload under /Documents/<folder_name>, creating the folder if needed."""
        safe_folder = sanitize_filename(folder_name)
        folder = await self.ensure_folder(f"{DOCUMENTS_ROOT}/{safe_folder}")
        name = sanitize_filename(filename)
        await self._upload(self._child_path(folder["id"], name), content)
        link = await self.create_shareable_link(folder["id"]) or folder.get("webUrl")
        return {"success": True, "folderUrl": link, "folderId": folder["id"], "fileName": name}

    # ── Listing ─────────────────────────────────────────────────────

    async def list_files(self, folder_id: str) -> list[dict]:
        """Files (not subfolders) directly inside a folder."""
        children = await self.graph.get_all_pages(f"{self.drive}/items/{folder_id}/children")
        return [normalize_file(item) for item in children if "file" in item]

    async def list_lead_documents(self, lead_number: str) -> dict:
        folder = await self.ensure_lead_folder(lead_number)
        link = await self.create_shareable_link(folder["id"]) or folder.get("webUrl")
        files = await self.list_files(folder["id"])
        return {
            "success": True,
            "leadNumber": lead_number,
            "folderId": folder["id"],
            "folderUrl": link,
            "count": len(files),
            "files": files,
        }


def remember_folder(db: Session, lead: Lead, folder: dict, link: str | None) -> Lead:
    """Cache the resolved folder on the lead so later calls can skip resolution."""
    folder_id = folder.get("id")
    link = link or folder.get("webUrl")
    if lead.onedrive_folder_id == folder_id and lead.onedrive_folder_link == link:
        return lead
    lead.onedrive_folder_id = folder_id
    lead.onedrive_folder_link = link
    lead.updated_at = datetime.now(timezone.utc)
    commit_or_raise(db, "Remember OneDrive folder")
    return lead
