import uuid

def gen_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def gen_document_id() -> str:
    # product_applications are keyed by a bare UUID (also used as the listing number)
    return str(uuid.uuid4())
