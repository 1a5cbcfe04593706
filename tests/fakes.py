"""In-memory stand-ins for the Appwrite SDK used by the service tests."""

from itertools import count
from typing import Any, Dict, List, Optional, Set

from appwrite.exception import AppwriteException


class FakeQuery:
    @staticmethod
    def equal(attribute: str, values: List[Any]):
        return ("equal", attribute, list(values))

    @staticmethod
    def order_asc(attribute: str):
        return ("order", attribute, False)

    @staticmethod
    def order_desc(attribute: str):
        return ("order", attribute, True)

    @staticmethod
    def limit(value: int):
        return ("limit", value)

    @staticmethod
    def offset(value: int):
        return ("offset", value)


class FakeDatabases:
    def __init__(self) -> None:
        self.collections: Dict[str, Dict[str, Dict]] = {}
        self.fail_on: Set[str] = set()
        self.calls: List[str] = []
        self._ids = count(1)
        self._clock = count(1)

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise AppwriteException("Network request failed", 503)

    def _collection(self, collection_id: str) -> Dict[str, Dict]:
        return self.collections.setdefault(collection_id, {})

    def list_documents(self, database_id: str, collection_id: str, queries: Optional[List] = None) -> Dict:
        self._check("list_documents")
        docs = list(self._collection(collection_id).values())
        limit, offset = None, 0
        for query in queries or []:
            kind = query[0]
            if kind == "equal":
                _, attribute, values = query
                docs = [doc for doc in docs if doc.get(attribute) in values]
            elif kind == "order":
                _, attribute, descending = query
                docs.sort(key=lambda doc: doc.get(attribute) or "", reverse=descending)
            elif kind == "limit":
                limit = query[1]
            elif kind == "offset":
                offset = query[1]
        docs = docs[offset:]
        if limit is not None:
            docs = docs[:limit]
        return {"total": len(docs), "documents": [dict(doc) for doc in docs]}

    def create_document(self, database_id: str, collection_id: str, document_id: str, data: Dict) -> Dict:
        self._check("create_document")
        if document_id == "unique()" or not document_id:
            document_id = f"doc{next(self._ids)}"
        collection = self._collection(collection_id)
        if document_id in collection:
            raise AppwriteException("Document with the requested ID already exists.", 409)
        doc = {**data, "$id": document_id}
        # keep insertion order observable when created_at timestamps collide
        doc["created_at"] = f"{data.get('created_at', '')}#{next(self._clock):06d}"
        collection[document_id] = doc
        return dict(doc)

    def get_document(self, database_id: str, collection_id: str, document_id: str) -> Dict:
        self._check("get_document")
        doc = self._collection(collection_id).get(document_id)
        if doc is None:
            raise AppwriteException("Document with the requested ID could not be found.", 404)
        return dict(doc)

    def update_document(self, database_id: str, collection_id: str, document_id: str, data: Dict) -> Dict:
        self._check("update_document")
        doc = self._collection(collection_id).get(document_id)
        if doc is None:
            raise AppwriteException("Document with the requested ID could not be found.", 404)
        doc.update(data)
        return dict(doc)

    def delete_document(self, database_id: str, collection_id: str, document_id: str) -> None:
        self._check("delete_document")
        if self._collection(collection_id).pop(document_id, None) is None:
            raise AppwriteException("Document with the requested ID could not be found.", 404)


def make_service(databases: FakeDatabases):
    from gradetrackr.services.appwrite_service import AppwriteService

    return AppwriteService(
        endpoint="http://appwrite.test/v1",
        project_id="project",
        api_key="key",
        database_id="db",
        profiles_collection_id="profiles",
        semesters_collection_id="semesters",
        courses_collection_id="courses",
        goals_collection_id="goals",
        databases=databases,
    )
