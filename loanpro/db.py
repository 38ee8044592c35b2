from flask import current_app
from httpx import RemoteProtocolError
from supabase import create_client, Client


def get_supabase() -> Client:
    """Return the Supabase client bound to the current app, creating it on first use."""
    client = current_app.extensions.get("supabase")
    if client is None:
        url = current_app.config.get("SUPABASE_URL")
        key = current_app.config.get("SUPABASE_KEY")
        if not url or not key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set")
        client = create_client(url, key)
        current_app.extensions["supabase"] = client
    return client


def sb_exec(qb, attempts=3):
    """
    Execute a Supabase query builder with simple retries to handle transient
    'RemoteProtocolError: Server disconnected' issues.
    """
    for i in range(attempts):
        try:
            return qb.execute()
        except RemoteProtocolError as e:
            current_app.logger.warning(f"Supabase disconnected (attempt {i + 1}/{attempts}): {e}")
            if i == attempts - 1:
                raise


def fetch_one(table, **filters):
    """Fetch the first row of ``table`` matching all equality filters, or None."""
    qb = get_supabase().table(table).select("*")
    for column, value in filters.items():
        qb = qb.eq(column, value)
    resp = sb_exec(qb.limit(1))
    return resp.data[0] if resp.data else None


def fetch_all(table, order_by=None, desc=False, **filters):
    qb = get_supabase().table(table).select("*")
    for column, value in filters.items():
        qb = qb.eq(column, value)
    if order_by:
        qb = qb.order(order_by, desc=desc)
    resp = sb_exec(qb)
    return resp.data or []


def next_number(table, prefix):
    """One past the highest numeric suffix among ids in ``table`` starting with ``prefix``."""
    resp = sb_exec(get_supabase().table(table).select("id"))
    highest_num = 0
    for row in resp.data or []:
        row_id = str(row.get("id") or "")
        if row_id.startswith(prefix):
            try:
                highest_num = max(highest_num, int(row_id[len(prefix):]))
            except ValueError:
                continue
    return highest_num + 1


def next_id(table, prefix, width=4):
    """Generate the next textual id in format <prefix>XXXX (e.g. LN0001)."""
    return f"{prefix}{next_number(table, prefix):0{width}d}"
