"""XML document handling for request and response bodies.

Response documents are decoded with xmltodict into plain ordered mappings:
the root element is dropped (callers index ``doc["IsTruncated"]`` rather than
``doc["ListBucketResult"]["IsTruncated"]``), namespace attributes are
stripped, and repeated child elements become lists. Because a single child
and a repeated child decode differently, call sites go through ``as_list``.
"""

import base64
import hashlib
import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from xml.parsers.expat import ExpatError

import xmltodict

from s3lite.core.exceptions import ResponseDecodeError

S3_XMLNS = "http://s3.amazonaws.com/doc/2006-03-01/"

Document = Dict[str, Any]


def strip_xmlns(obj: Any) -> Any:
    """Strip xmlns attributes from a structure returned by xmltodict.parse."""
    if isinstance(obj, list):
        return [strip_xmlns(item) for item in obj]
    if isinstance(obj, dict):
        obj = {k: v for k, v in obj.items() if k != "@xmlns"}
        if len(obj) == 1 and "#text" in obj:
            return obj["#text"]
        return {k: strip_xmlns(v) for k, v in obj.items()}
    return obj


def parse_xml(body: bytes) -> Document:
    """Decode an XML body into the mapping of its root element's children."""
    try:
        parsed = xmltodict.parse(body)
    except ExpatError as e:
        raise ResponseDecodeError(f"Malformed XML response: {e}") from e

    if not parsed:
        return {}
    _, root = next(iter(parsed.items()))
    root = strip_xmlns(root)
    if root is None:
        return {}
    if not isinstance(root, dict):
        return {"#text": root}
    return root


def parse_json(body: bytes) -> Document:
    try:
        return json.loads(body)
    except ValueError as e:
        raise ResponseDecodeError(f"Malformed JSON response: {e}") from e


def looks_like_xml(body: bytes) -> bool:
    return body.lstrip().startswith(b"<?xml")


def parse_document(body: bytes, content_type: str = "") -> Any:
    """Decode a response body according to its content type.

    Some S3-compatible services label XML as ``text/plain``, so an XML
    declaration at the start of the body is also taken as XML. Bodies that
    are neither XML nor JSON are returned unchanged.
    """
    content_type = content_type.lower()
    if not body:
        return body
    if "json" in content_type:
        return parse_json(body)
    if "xml" in content_type or looks_like_xml(body):
        return parse_xml(body)
    return body


def to_xml(document: Mapping[str, Any]) -> str:
    """Serialize a nested mapping (single root key) to an XML string."""
    return xmltodict.unparse(document, full_document=False)


def as_list(value: Any) -> List[Any]:
    """Normalize a decoded child element to a list of occurrences."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def tagging_document(tags: Mapping[str, str]) -> str:
    doc = {
        "Tagging": {
            "TagSet": {
                "Tag": [{"Key": k, "Value": v} for k, v in tags.items()],
            }
        }
    }
    return to_xml(doc)


def tags_from_document(doc: Optional[Document]) -> Dict[str, str]:
    """Extract ``{key: value}`` from a decoded ``<Tagging>`` document."""
    tag_set = (doc or {}).get("TagSet")
    if not tag_set:
        return {}
    return {tag["Key"]: tag.get("Value") or "" for tag in as_list(tag_set.get("Tag"))}


def completion_manifest(etags: Iterable[str]) -> str:
    """Build the CompleteMultipartUpload body; part numbers follow list order."""
    parts = [
        {"PartNumber": str(number), "ETag": etag}
        for number, etag in enumerate(etags, start=1)
    ]
    return to_xml({"CompleteMultipartUpload": {"Part": parts}})


def create_bucket_configuration(region: str) -> str:
    return to_xml(
        {
            "CreateBucketConfiguration": {
                "@xmlns": S3_XMLNS,
                "LocationConstraint": region,
            }
        }
    )


def versioning_configuration(status: str = "Enabled") -> str:
    return to_xml(
        {"VersioningConfiguration": {"@xmlns": S3_XMLNS, "Status": status}}
    )


def content_md5(body: bytes) -> str:
    """Base64 MD5 digest for the ``Content-MD5`` header."""
    return base64.b64encode(hashlib.md5(body).digest()).decode("ascii")


def error_fields(doc: Any) -> Tuple[str, str, Dict[str, Any]]:
    """Split a decoded ``<Error>`` document into (code, message, info)."""
    if not isinstance(doc, dict):
        return "", "", {}
    info = {k: v for k, v in doc.items() if not k.startswith("@")}
    return str(info.get("Code") or ""), str(info.get("Message") or ""), info
