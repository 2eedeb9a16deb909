"""In-memory transport standing in for the REST API, plus archive builders."""

import copy
import gzip
import io
import tarfile
import zipfile

from Strata.api.client import Transport
from Strata.utils.errors import TransportError

ID_ORDER = ("space_id", "dataset_id", "file_id", "item_id")

PARENT_FIELDS = {
    "space": (),
    "dataset": ("space_id",),
    "file": ("space_id", "dataset_id"),
    "annotation": ("space_id", "dataset_id", "file_id"),
    "bot": ("space_id",),
    "board": ("space_id", "dataset_id"),
}


def _ordered(ident):
    return tuple(ident[k] for k in ID_ORDER if ident.get(k) is not None)


def _payload(items):
    return {"count": len(items), "items": items}


class FakeTransport(Transport):
    """Keeps records per kind and file bytes per (space, dataset, file)."""

    def __init__(self):
        self.records = {kind: [] for kind in ("space", "dataset", "file", "annotation", "activity", "bot", "board")}
        self.blobs = {}
        self.fail_downloads = set()
        self.downloads = []
        self.calls = []
        self.users = {"me": {"id": "u1", "display_name": "Test User"}}
        self.prefs = {}
        self._seq = 0

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def next_id(self, prefix):
        self._seq += 1
        return f"new-{prefix}{self._seq}"

    def add(self, kind, ident, **fields):
        record = {"id": dict(ident), **fields}
        self.records[kind].append(record)
        return record

    def add_space(self, sid, **fields):
        return self.add("space", {"item_id": sid}, name=fields.pop("name", sid), **fields)

    def add_dataset(self, sid, did, **fields):
        return self.add("dataset", {"space_id": sid, "item_id": did}, name=fields.pop("name", did), **fields)

    def add_file(self, sid, did, fid, name, data, content_type="text/plain"):
        self.blobs[(sid, did, fid)] = data
        return self.add(
            "file",
            {"space_id": sid, "dataset_id": did, "item_id": fid},
            name=name,
            content_type=content_type,
            size=len(data),
        )

    def add_annotation(self, sid, did, fid, aid, **fields):
        return self.add(
            "annotation",
            {"space_id": sid, "dataset_id": did, "file_id": fid, "item_id": aid},
            **fields,
        )

    # ------------------------------------------------------------------
    # Transport interface
    # ------------------------------------------------------------------

    def _out(self, kind, records):
        items = copy.deepcopy(records)
        for item in items:
            item["id"]["type"] = kind
        return _payload(items)

    def _find(self, kind, parts):
        for record in self.records[kind]:
            if _ordered(record["id"]) == tuple(parts):
                return record
        return None

    async def run(self, kind, method, parts, body=None):
        parts = list(parts)
        self.calls.append((kind, method, parts, copy.deepcopy(body)))

        if kind == "annotation" and "comments" in parts:
            return self._comments(method, parts, body)

        if method == "GET":
            matched = [r for r in self.records[kind] if _ordered(r["id"])[: len(parts)] == tuple(parts)]
            return self._out(kind, matched)

        if method == "POST":
            return self._out(kind, [self._create(kind, parts, dict(body or {}))])

        record = self._find(kind, parts)
        if record is None:
            raise TransportError(404, "Not Found")
        if method == "PATCH":
            record.update({k: v for k, v in (body or {}).items() if k != "id"})
            return self._out(kind, [record])
        if method == "DELETE":
            self.records[kind].remove(record)
            return _payload([])
        raise TransportError(405, "Method Not Allowed")

    def _create(self, kind, parts, body):
        if kind == "space":
            ident = {"item_id": body.pop("id")}
        elif kind == "activity":
            names = ID_ORDER[: len(parts)]
            ident = {**dict(zip(names, parts)), "item_id": self.next_id("y")}
        elif kind in ("bot", "board"):
            names = PARENT_FIELDS[kind] + ("item_id",)
            ident = dict(zip(names, parts))
        else:
            ident = {**dict(zip(PARENT_FIELDS[kind], parts)), "item_id": self.next_id(kind[0])}
        return self.add(kind, ident, owner="u1", **body)

    def _comments(self, method, parts, body):
        at = parts.index("comments")
        record = self._find("annotation", parts[:at])
        if record is None:
            raise TransportError(404, "Not Found")
        comments = record.setdefault("comments", [])
        if method == "POST":
            comments.append({"id": self.next_id("c"), "text": body["text"], "owner": "u1"})
        elif method == "PATCH":
            for comment in comments:
                if comment["id"] == parts[at + 1]:
                    comment["text"] = body["text"]
        elif method == "DELETE":
            record["comments"] = [c for c in comments if c["id"] != parts[at + 1]]
        return self._out("annotation", [record])

    async def upload_file(self, space_id, dataset_id, name, size, content_type, content, description=None):
        fid = self.next_id("f")
        self.blobs[(space_id, dataset_id, fid)] = bytes(content)
        record = self.add(
            "file",
            {"space_id": space_id, "dataset_id": dataset_id, "item_id": fid},
            name=name,
            size=size,
            content_type=content_type,
            description=description,
            owner="u1",
        )
        return self._out("file", [record])

    async def get_file_content(self, space_id, dataset_id, file_id, compress=True):
        key = (space_id, dataset_id, file_id)
        self.downloads.append((key, compress))
        if key in self.fail_downloads:
            raise TransportError(500, "Internal Server Error")
        if key not in self.blobs:
            raise TransportError(404, "Not Found")
        return self.blobs[key]

    async def get_user(self, user_id):
        user = self.users.get(user_id)
        return _payload([] if user is None else [dict(user)])

    async def get_prefs(self):
        return dict(self.prefs)

    async def put_prefs(self, prefs):
        self.prefs = dict(prefs.get("prefs") or {})
        return dict(self.prefs)


# ============================================================================
# Archive builders
# ============================================================================

def make_zip(entries):
    """Zip bytes with ``entries`` (name -> bytes) in insertion order."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buf.getvalue()


def make_tar(entries, directories=(), compress=False):
    """Tar bytes with regular ``entries`` plus empty ``directories``."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz" if compress else "w") as archive:
        for name in directories:
            info = tarfile.TarInfo(name)
            info.type = tarfile.DIRTYPE
            archive.addfile(info)
        for name, data in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def gz(data):
    return gzip.compress(data)
