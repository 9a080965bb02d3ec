"""Request payload for the C019 existence check."""

from __future__ import annotations

import json
from datetime import datetime, timedelta

REQUEST_REASON = "1"
USE_CASE = "C019"


def create_body(tax_id: str, operation_id: int, now: datetime) -> str:
    """Serialize the compact JSON body; the reference date is the day before ``now``."""

    payload = {
        "idOperazioneClient": str(operation_id),
        "criteriRicerca": {
            "codiceFiscale": tax_id,
        },
        "datiRichiesta": {
            "dataRiferimentoRichiesta": (now - timedelta(days=1)).date().isoformat(),
            "motivoRichiesta": REQUEST_REASON,
            "casoUso": USE_CASE,
        },
    }
    return json.dumps(payload, separators=(",", ":"))
