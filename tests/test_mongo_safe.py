from bson import ObjectId

from fyht4.utils.mongo_safe import safe_object_id, safe_query, safe_update


def test_safe_object_id():
    oid = ObjectId()
    assert safe_object_id(str(oid)) == oid
    assert safe_object_id("nope") is None
    assert safe_object_id("") is None
    assert safe_object_id(None) is None
    assert safe_object_id(123) is None


def test_safe_query_drops_operators_recursively():
    q = {"email": "a@b.c", "$where": "1", "profile": {"$ne": None, "zip": "10001"}}
    assert safe_query(q) == {"email": "a@b.c", "profile": {"zip": "10001"}}


def test_safe_update_allowlist_and_operator_values():
    upd = {"name": "x", "role": "admin", "zipcode": {"$set": "1"}, "bio": {"text": "hi"}}
    assert safe_update(upd, ["name", "zipcode", "bio"]) == {"name": "x", "bio": {"text": "hi"}}
