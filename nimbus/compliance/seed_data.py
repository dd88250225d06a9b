"""Embedded rule and location tables, loaded once at process start."""

from __future__ import annotations

from typing import Any

# Jurisdiction code -> display name
JURISDICTIONS: dict[str, str] = {
    "DEN-CO": "Denver, CO",
    "COS-CO": "Colorado Springs, CO",
    "MSP-MN": "Minneapolis, MN",
    "DAL-TX": "Dallas, TX",
    "PHX-AZ": "Phoenix, AZ",
}

# Three-digit postal-code prefix -> jurisdiction code
POSTAL_PREFIXES: dict[str, str] = {
    "800": "DEN-CO",
    "802": "DEN-CO",
    "809": "COS-CO",
    "554": "MSP-MN",
    "752": "DAL-TX",
    "850": "PHX-AZ",
}

SEED_RULES: list[dict[str, Any]] = [
    {
        "jurisdiction": "DEN-CO",
        "text": "Ice barrier required at eaves, extending 24 in. inside the exterior wall line.",
        "source": "Denver Building Code 2022",
        "section": "R905.1.2",
        "effective_date": "2022-10-01",
        "required_item": {
            "category": "RFG",
            "selector": "IWS",
            "description": "Ice & Water Shield",
            "quantity": 300.0,
            "unit": "SF",
            "note": "Added per Denver Building Code 2022: ice barrier mandatory at eaves.",
        },
    },
    {
        "jurisdiction": "COS-CO",
        "text": "Ice barrier required at eaves and valleys.",
        "source": "Pikes Peak Regional Building Code 2017",
        "section": "RR905.1.2",
        "effective_date": "2018-01-01",
        "required_item": {
            "category": "RFG",
            "selector": "IWS",
            "description": "Ice & Water Shield",
            "quantity": 200.0,
            "unit": "SF",
            "note": "Added per Pikes Peak Regional Building Code 2017: ice barrier at eaves.",
        },
    },
    {
        "jurisdiction": "COS-CO",
        "text": "Drip edge required at eaves and rake edges of shingle roofs.",
        "source": "Pikes Peak Regional Building Code 2017",
        "section": "RR905.2.8.5",
        "effective_date": "2018-01-01",
        "required_item": {
            "category": "RFG",
            "selector": "DRIP",
            "description": "Drip edge",
            "quantity": 180.0,
            "unit": "LF",
            "note": "Added per Pikes Peak Regional Building Code 2017: drip edge at eaves and rakes.",
        },
    },
    {
        "jurisdiction": "MSP-MN",
        "text": "Ice barrier required where average January temperature is 25°F or less.",
        "source": "Minnesota Residential Code 2020",
        "section": "R905.1.2",
        "effective_date": "2020-03-31",
        "required_item": {
            "category": "RFG",
            "selector": "IWS",
            "description": "Ice & Water Shield",
            "quantity": 400.0,
            "unit": "SF",
            "note": "Added per Minnesota Residential Code 2020: ice barrier mandatory.",
        },
    },
    {
        "jurisdiction": "DAL-TX",
        "text": "Drip edge required at eaves and gables of asphalt shingle roofs.",
        "source": "Dallas Building Code 2021",
        "section": "R905.2.8.5",
        "effective_date": "2021-09-01",
        "required_item": {
            "category": "RFG",
            "selector": "DRIP",
            "description": "Drip edge",
            "quantity": 160.0,
            "unit": "LF",
            "note": "Added per Dallas Building Code 2021: drip edge at eaves and gables.",
        },
    },
]
