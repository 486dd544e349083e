from __future__ import annotations

"""Utilities for exporting map data in various formats."""

from pathlib import Path
import json
import xml.etree.ElementTree as ET

from .cells import MacroCell
from .grid import Grid


def _cell_to_dict(cell: MacroCell) -> dict:
    return {
        "coord": list(cell.coord),
        "terrain": cell.terrain.value,
        "owner": cell.owner,
        "development": cell.development.value,
        "population": cell.population,
        "resources": {r.value: amt for r, amt in cell.resources.items() if amt},
    }


def export_grid_json(grid: Grid, path: str | Path) -> None:
    """Export macro cell terrain, ownership and resources to a JSON file."""
    data = {
        "size": grid.size,
        "inner_size": grid.inner_size,
        "cells": [_cell_to_dict(c) for c in grid.cells()],
    }
    with open(Path(path), "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_grid_xml(grid: Grid, path: str | Path) -> None:
    """Export macro cell terrain and resources to an XML file."""
    root = ET.Element("map", size=str(grid.size), inner_size=str(grid.inner_size))
    for cell in grid.cells():
        attrs = {
            "x": str(cell.coord[0]),
            "y": str(cell.coord[1]),
            "terrain": cell.terrain.value,
        }
        if cell.owner is not None:
            attrs["owner"] = str(cell.owner)
        cell_el = ET.SubElement(root, "cell", **attrs)
        for rtype, amt in cell.resources.items():
            if amt:
                ET.SubElement(cell_el, "resource", type=rtype.value, amount=str(amt))
    tree = ET.ElementTree(root)
    tree.write(Path(path), encoding="utf-8", xml_declaration=True)


__all__ = ["export_grid_json", "export_grid_xml"]
