"""
Prospect History
Historico local de prospeccoes (arquivo JSON)

Estrutura do arquivo:
    {
        "prospects": [...],   # mais recente primeiro
        "analytics": {
            "total_analyses": int,
            "by_activity": {atividade: int},
            "by_business_type": {tipo: int},
            "products_suggested": {codigo: int}
        }
    }
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog

from config.settings import settings
from prospector.models import AnalysisResult
from prospector.utils.validators import mask_cnpj

from .ai_analyzer import identify_business_type

logger = structlog.get_logger()

MAX_PROSPECTS = 100


def _empty_analytics() -> Dict[str, Any]:
    return {
        "total_analyses": 0,
        "by_activity": {},
        "by_business_type": {},
        "products_suggested": {},
    }


def _previous_month(now: datetime) -> tuple:
    if now.month == 1:
        return now.year - 1, 12
    return now.year, now.month - 1


class ProspectHistory:
    """Armazenamento key/value local das prospeccoes"""

    def __init__(self, path: Optional[Union[str, Path]] = None, max_prospects: int = MAX_PROSPECTS):
        self.path = Path(path or settings.history_path)
        self.max_prospects = max_prospects
        self._data = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"prospects": [], "analytics": _empty_analytics()}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("history_load_failed", path=str(self.path), error=str(e))
            return {"prospects": [], "analytics": _empty_analytics()}

        data.setdefault("prospects", [])
        analytics = data.setdefault("analytics", {})
        for key, value in _empty_analytics().items():
            analytics.setdefault(key, value)
        return data

    def _save(self, data: Dict[str, Any]) -> None:
        """Grava no disco e so entao substitui o estado em memoria"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)
        self._data = data

    def record(self, result: AnalysisResult) -> Dict[str, Any]:
        """
        Registra uma analise e atualiza os contadores

        Returns:
            Entrada gravada no historico
        """
        company = result.company
        activity = company.main_activity or "Não informado"
        business_type = identify_business_type(activity).value
        codes = [s.product_code for s in result.suggestions]

        entry = {
            "tax_id": company.tax_id,
            "name": company.display_name,
            "activity": activity,
            "business_type": business_type,
            "address": company.address,
            "suggested_products": codes,
            "social_platforms": [p.value for p in result.social.platforms],
            "menu_items": result.menu.item_count,
            "timestamp": result.generated_at.isoformat(),
        }

        prospects: List[Dict[str, Any]] = [entry, *self._data["prospects"]][: self.max_prospects]

        current = self._data["analytics"]
        activity_key = activity.split(" ")[0].lower()
        by_activity = dict(current["by_activity"])
        by_activity[activity_key] = by_activity.get(activity_key, 0) + 1
        by_business_type = dict(current["by_business_type"])
        by_business_type[business_type] = by_business_type.get(business_type, 0) + 1
        products_suggested = dict(current["products_suggested"])
        for code in codes:
            products_suggested[code] = products_suggested.get(code, 0) + 1

        analytics = {
            **current,
            "total_analyses": current["total_analyses"] + 1,
            "by_activity": by_activity,
            "by_business_type": by_business_type,
            "products_suggested": products_suggested,
        }

        self._save({**self._data, "prospects": prospects, "analytics": analytics})
        logger.info("prospect_recorded", cnpj=mask_cnpj(company.tax_id), total=analytics["total_analyses"])
        return entry

    def list_prospects(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Prospeccoes mais recentes primeiro"""
        return self._data["prospects"][:limit]

    @property
    def analytics(self) -> Dict[str, Any]:
        return self._data["analytics"]

    def get_metrics(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Metricas do historico

        Returns:
            total, this_month, last_month e growth_pct
            (crescimento do mes atual sobre o anterior; 0 sem mes anterior)
        """
        now = now or datetime.utcnow()
        last_year, last_month = _previous_month(now)

        this_month_count = 0
        last_month_count = 0
        for prospect in self._data["prospects"]:
            try:
                timestamp = datetime.fromisoformat(prospect["timestamp"])
            except (KeyError, TypeError, ValueError):
                continue
            if (timestamp.year, timestamp.month) == (now.year, now.month):
                this_month_count += 1
            elif (timestamp.year, timestamp.month) == (last_year, last_month):
                last_month_count += 1

        growth = (
            round((this_month_count - last_month_count) / last_month_count * 100, 1)
            if last_month_count
            else 0.0
        )

        return {
            "total": len(self._data["prospects"]),
            "this_month": this_month_count,
            "last_month": last_month_count,
            "growth_pct": growth,
        }

    def clear(self) -> None:
        self._save({"prospects": [], "analytics": _empty_analytics()})
