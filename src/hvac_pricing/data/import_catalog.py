"""
Catalog Importer - loads a device price list (CSV or Excel) into the store.

Expected columns: Category, Model, Factory Price, Length, Weight.
Produces an import report with the input file hash and row metrics.
"""
import hashlib
import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config.settings import get_settings, Settings
from ..config.logging import get_logger
from ..engine.capabilities import CapabilityToken
from ..services.catalog_service import CatalogService
from ..store.tables import DeviceRecord, money_overflow

logger = get_logger(__name__)

REQUIRED_COLUMNS = ['Category', 'Model', 'Factory Price', 'Length', 'Weight']


def get_file_hash(path: Path) -> str:
    """Get SHA256 hash of a file."""
    if not path.exists():
        return ""
    with open(path, 'rb') as f:
        return hashlib.sha256(f.read()).hexdigest()[:12]


def read_price_list(path: Path) -> pd.DataFrame:
    """Read a CSV or Excel price list with normalized headers."""
    if path.suffix.lower() in ('.xlsx', '.xls'):
        df = pd.read_excel(path, dtype={'Category': str, 'Model': str})
    else:
        df = pd.read_csv(path, dtype={'Category': str, 'Model': str})
    df.columns = [str(c).strip() for c in df.columns]
    return df


def import_devices(
    path: Path,
    session: Session,
    token: CapabilityToken,
    settings: Optional[Settings] = None,
    verbose: bool = False,
) -> dict:
    """
    Import devices from a price list, upserting by (category, model).

    Args:
        path: CSV or Excel file
        session: Store session
        token: Admin capability token (MANAGE_CATALOG)
        settings: Optional settings override
        verbose: Print progress messages

    Returns:
        Import report dictionary
    """
    settings = settings or get_settings()
    catalog = CatalogService(session)

    report = {
        "timestamp": datetime.now().isoformat(),
        "status": "pending",
        "input_files": {},
        "metrics": {},
        "warnings": [],
        "errors": []
    }

    if not path.exists():
        msg = f"CRITICAL ERROR: {path} not found."
        report["errors"].append(msg)
        report["status"] = "failed"
        if verbose:
            print(msg)
        return report

    report["input_files"]["price_list"] = {
        "path": str(path),
        "hash": get_file_hash(path)
    }

    try:
        df = read_price_list(path)
    except Exception as e:
        msg = f"ERROR: Failed to read {path}. {e}"
        report["errors"].append(msg)
        report["status"] = "failed"
        if verbose:
            print(msg)
        return report

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        report["errors"].append(f"Missing required column(s): {', '.join(missing)}")
        report["status"] = "failed"
        return report

    df = df[REQUIRED_COLUMNS].copy()
    report["metrics"]["initial_row_count"] = len(df)

    # Blank cells arrive as NaN; strip only real strings
    for col in ('Category', 'Model'):
        df[col] = df[col].map(lambda v: v.strip() if isinstance(v, str) else '')
    blank = (df['Category'] == '') | (df['Model'] == '')
    if blank.any():
        report["warnings"].append(f"Skipped {int(blank.sum())} row(s) with a blank Category or Model")
    df = df[~blank]

    # Later rows win for repeated models
    duplicates = df.duplicated(subset=['Category', 'Model'], keep='last').sum()
    df = df.drop_duplicates(subset=['Category', 'Model'], keep='last')
    report["metrics"]["duplicates_removed"] = int(duplicates)

    for col in ('Factory Price', 'Length', 'Weight'):
        df[col] = pd.to_numeric(df[col], errors='coerce')

    created = updated = categories_created = 0
    rejected = int(blank.sum())
    for row in df.itertuples(index=False):
        category_name, model, price, length, weight = row
        if any(pd.isna(v) or v <= 0 for v in (price, length, weight)):
            report["warnings"].append(f"Skipped {category_name}/{model}: price, length and weight must be positive")
            rejected += 1
            continue
        # str() keeps the printed value, not the float's binary expansion
        price, length, weight = str(price), str(length), str(weight)
        overflow = None
        for label, value in (('price', price), ('length', length), ('weight', weight)):
            problem = money_overflow(Decimal(value))
            if problem:
                overflow = f"{label} {problem}"
                break
        if overflow:
            report["warnings"].append(f"Skipped {category_name}/{model}: {overflow}")
            rejected += 1
            continue

        category = catalog.find_category(category_name)
        if category is None:
            category = catalog.save_category(token, category_name, commit=False)
            categories_created += 1

        existing = session.scalars(
            select(DeviceRecord).where(
                DeviceRecord.category_id == category.id,
                DeviceRecord.model_name == model,
            )
        ).first()

        catalog.save_device(
            token,
            category_id=category.id,
            model_name=model,
            factory_price=price,
            length=length,
            weight=weight,
            device_id=existing.id if existing else None,
            commit=False,
        )
        if existing:
            updated += 1
        else:
            created += 1

    session.commit()

    report["metrics"].update({
        "devices_created": created,
        "devices_updated": updated,
        "rows_rejected": rejected,
        "categories_created": categories_created,
    })
    report["status"] = "success"
    logger.info("Imported %s: %d created, %d updated, %d rejected", path, created, updated, rejected)

    if verbose:
        print(f"\nIMPORT COMPLETE: {created} created, {updated} updated, {rejected} rejected.")

    # Save import report
    report_path = settings.import_report
    if report_path:
        report_path.parent.mkdir(parents=True, exist_ok=True)
        with open(report_path, 'w') as f:
            json.dump(report, f, indent=2)
        if verbose:
            print(f"Import report saved to: {report_path}")

    return report
