"""
Product Catalog
Catalogo de produtos do atacado usado nas recomendacoes
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from prospector.models import CatalogProduct

_PRODUCTS = [
    ("48", "BANHA SUÍNA REFINADA 1 KG", "14,90", "UN", "gorduras"),
    ("271", "BACON EM CUBOS DEFUMADO 1 KG", "32,40", "KG", "carnes"),
    ("277", "MOLHO DE TOMATE TRADICIONAL 2 KG", "17,85", "UN", "molhos"),
    ("318", "FERMENTO BIOLÓGICO SECO 500 G", "19,70", "UN", "panificação"),
    ("319", "MELHORADOR DE FARINHA 1 KG", "21,30", "UN", "panificação"),
    ("334", "QUEIJO MUSSARELA FATIADO 4 KG", "34,90", "KG", "laticínios"),
    ("506", "ARROZ BRANCO TIPO 1 5 KG", "27,50", "UN", "mercearia"),
    ("597", "FARINHA DE TRIGO ESPECIAL 25 KG", "89,90", "SC", "farináceos"),
    ("740", "ABACAXI EM CALDA RODELAS TOZZI 400 G", "18,65", "LT", "conservas"),
    ("5167", "ACÉM BOVINO RESFRIADO PLENA 8 KG", "28,64", "KG", "carnes"),
    ("8563", "MASSA FRESCA TALHARIM 1 KG", "16,80", "KG", "massas"),
]


def _parse_price(value: str) -> Decimal:
    return Decimal(value.replace(".", "").replace(",", "."))


class ProductCatalog:
    """Consulta de produtos por codigo"""

    def __init__(self, products: Optional[Iterable[CatalogProduct]] = None):
        if products is None:
            products = [
                CatalogProduct(code=code, name=name, price=_parse_price(price), unit=unit, category=category)
                for code, name, price, unit, category in _PRODUCTS
            ]
        self._products: Dict[str, CatalogProduct] = {p.code: p for p in products}

    def get(self, code: str) -> Optional[CatalogProduct]:
        return self._products.get(str(code))

    def get_many(self, codes: Iterable[str]) -> List[CatalogProduct]:
        """Produtos conhecidos, na ordem dos codigos informados"""
        return [p for p in (self.get(c) for c in codes) if p is not None]

    def by_category(self, category: str) -> List[CatalogProduct]:
        return [p for p in self._products.values() if p.category == category]

    def __contains__(self, code: str) -> bool:
        return str(code) in self._products

    def __len__(self) -> int:
        return len(self._products)
