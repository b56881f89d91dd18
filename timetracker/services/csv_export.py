from typing import Iterable, Dict, Any, List
from fastapi import Response
import csv
from io import StringIO

def stream_csv(rows: Iterable[Dict[str, Any]], fieldnames: List[str], filename: str) -> Response:
    sio = StringIO()
    writer = csv.DictWriter(sio, fieldnames=fieldnames, extrasaction="ignore")
    writer.writeheader()
    for r in rows:
        writer.writerow(r)
    resp = Response(content=sio.getvalue(), media_type="text/csv")
    resp.headers['Content-Disposition'] = f'attachment; filename="{filename}"'
    return resp
