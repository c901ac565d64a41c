"""
Menu Analyzer
Analise local de cardapios em texto livre

Extrai itens e precos, categoriza, calcula estatisticas de preco e
conta ingredientes. Nao faz I/O: pode rodar em thread separada.
"""

import re
import unicodedata
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import structlog

from prospector.models import (
    IngredientCount,
    MenuAnalysis,
    MenuCategory,
    MenuItem,
    PriceStatistics,
)
from prospector.utils.validators import parse_brl_amount, round_money

logger = structlog.get_logger()

_PRICE = r"R\$\s*(?P<price>\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?|\d+(?:[.,]\d{1,2})?)"
_THOUSANDS_ONLY = re.compile(r"\d{1,3}(?:\.\d{3})+")
_NAME = r"(?P<name>[^\W\d_].*?)"

# Ordem de tentativa por linha: numerado, com descricao, simples
ITEM_PATTERNS = [
    re.compile(rf"^\s*\d+\s*[.)]\s*{_NAME}\s*[-.:]*\s*{_PRICE}"),
    re.compile(rf"^\s*{_NAME}\s+-\s+(?P<description>.+?)\s+-\s*{_PRICE}"),
    re.compile(rf"^\s*{_NAME}\s*[-.:]*\s*{_PRICE}"),
]

MIN_NAME_LENGTH = 3

# Categorias em ordem de prioridade; a primeira que casar vence
CATEGORY_KEYWORDS = {
    MenuCategory.PIZZAS: ["pizza", "margherita", "calabresa", "portuguesa", "pepperoni", "mozzarella"],
    MenuCategory.BURGERS: ["hambúrguer", "burger", "x-bacon", "x-tudo", "cheeseburger", "sanduíche"],
    MenuCategory.PASTA: ["espaguete", "lasanha", "macarrão", "penne", "ravioli", "nhoque", "talharim"],
    MenuCategory.MEATS: ["bife", "picanha", "alcatra", "frango", "costela", "file", "carne"],
    MenuCategory.SEAFOOD: ["camarão", "peixe", "salmão", "bacalhau", "lula", "polvo"],
    MenuCategory.DESSERTS: ["pudim", "torta", "sorvete", "mousse", "brigadeiro", "doce", "açaí"],
    MenuCategory.DRINKS: ["refrigerante", "suco", "água", "cerveja", "vinho", "caipirinha", "drink"],
    MenuCategory.STARTERS: ["salada", "bruschetta", "antipasto", "entrada", "aperitivo", "porção"],
}

# Palavras-chave para categorias em texto livre (contagem por frequencia)
FREQUENCY_KEYWORDS = {
    MenuCategory.PIZZAS: ["pizza", "mozzarella", "calabresa", "margherita", "napolitana"],
    MenuCategory.BURGERS: ["hamburguer", "burger", "lanche", "batata", "maionese"],
    MenuCategory.PASTA: ["massa", "espaguete", "lasanha", "macarrao", "molho"],
    MenuCategory.MEATS: ["carne", "bife", "picanha", "frango", "peixe"],
    MenuCategory.DESSERTS: ["sobremesa", "doce", "pudim", "torta", "sorvete"],
    MenuCategory.DRINKS: ["bebida", "refrigerante", "suco", "agua", "cerveja"],
}

INGREDIENTS = [
    "queijo", "mozzarella", "cheddar", "gorgonzola", "parmesão",
    "tomate", "cebola", "alho", "manjericão", "orégano",
    "carne", "frango", "bacon", "presunto", "calabresa",
    "camarão", "salmão", "atum", "bacalhau",
    "batata", "brócolis", "cogumelo", "azeitona", "pimentão",
    "molho", "azeite", "vinagre", "mostarda", "maionese",
]

ESTABLISHMENT_TYPES = {
    "pizzaria": ["pizza"],
    "lanchonete": ["lanche", "hambúrguer"],
    "restaurante": ["restaurante", "prato"],
    "padaria": ["pão", "padaria"],
    "sorveteria": ["sorvete", "açaí"],
}

DEFAULT_ESTABLISHMENT = "estabelecimento alimentício"

# Exemplo aprendido so vale com confianca e sobreposicao minimas
LEARNED_CONFIDENCE_CORRECT = 0.9
LEARNED_CONFIDENCE_WRONG = 0.1
LEARNED_MIN_CONFIDENCE = 0.5
LEARNED_MIN_OVERLAP = 0.5

PRICE_BANDS = [
    ("0-15", Decimal("15")),
    ("15-30", Decimal("30")),
    ("30-50", Decimal("50")),
    ("50-100", Decimal("100")),
]


def normalize_text(text: str) -> str:
    """Minusculas sem acentos"""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(c for c in decomposed if unicodedata.category(c) != "Mn")


def tokenize(text: str) -> List[str]:
    """Palavras normalizadas com mais de 2 caracteres"""
    words = re.sub(r"[^\w\s]", " ", normalize_text(text)).split()
    return [w for w in words if len(w) > 2]


def parse_menu_price(raw: str) -> Optional[Decimal]:
    """Preco do cardapio: "1.500" sem centavos vale 1500"""
    if _THOUSANDS_ONLY.fullmatch(raw):
        raw = raw.replace(".", "")
    return parse_brl_amount(raw)


@dataclass
class TrainingExample:
    """Cardapio ja classificado pelo vendedor"""
    keywords: List[str] = field(default_factory=list)
    establishment_type: str = DEFAULT_ESTABLISHMENT
    confidence: float = LEARNED_CONFIDENCE_CORRECT


class MenuAnalyzer:
    """Analise heuristica de cardapio"""

    def __init__(self, training_examples: Optional[Iterable[TrainingExample]] = None):
        self.training_examples: List[TrainingExample] = list(training_examples or [])

    def extract_items(self, text: str) -> List[MenuItem]:
        """
        Extrai itens com preco, uma linha por vez

        Args:
            text: Cardapio em texto livre

        Returns:
            Itens com nome > 3 caracteres e preco > 0, sem duplicatas
            (comparacao de nome sem diferenciar maiusculas)
        """
        items: List[MenuItem] = []
        seen = set()

        for line in (text or "").splitlines():
            item = self._parse_line(line)
            if item is None:
                continue
            key = item.name.lower()
            if key in seen:
                continue
            seen.add(key)
            items.append(item)

        return items

    def _parse_line(self, line: str) -> Optional[MenuItem]:
        for pattern in ITEM_PATTERNS:
            match = pattern.search(line)
            if not match:
                continue

            name = match.group("name").strip(" .-:")
            price = parse_menu_price(match.group("price"))
            if len(name) <= MIN_NAME_LENGTH or price is None or price <= 0:
                continue

            groups = match.groupdict()
            return MenuItem(
                name=name,
                price=round_money(price),
                description=(groups.get("description") or "").strip(),
            )
        return None

    def categorize_item(self, name: str) -> MenuCategory:
        normalized = normalize_text(name)
        for category, keywords in CATEGORY_KEYWORDS.items():
            if any(normalize_text(k) in normalized for k in keywords):
                return category
        return MenuCategory.OTHER

    def categorize(self, items: List[MenuItem]) -> Dict[MenuCategory, List[MenuItem]]:
        """Agrupa itens por categoria; categorias vazias sao omitidas"""
        categories: Dict[MenuCategory, List[MenuItem]] = {}
        for item in items:
            category = self.categorize_item(item.name)
            categories.setdefault(category, []).append(item.model_copy(update={"category": category}))

        # Mantem a ordem de prioridade das categorias
        return {c: categories[c] for c in MenuCategory if c in categories}

    def price_statistics(self, items: List[MenuItem]) -> PriceStatistics:
        """Minimo, maximo, media, mediana e distribuicao por faixa"""
        if not items:
            return PriceStatistics()

        prices = sorted(item.price for item in items)
        n = len(prices)
        middle = n // 2
        median = prices[middle] if n % 2 else (prices[middle - 1] + prices[middle]) / 2

        distribution = {band: 0 for band, _ in PRICE_BANDS}
        distribution["100+"] = 0
        for price in prices:
            for band, limit in PRICE_BANDS:
                if price <= limit:
                    distribution[band] += 1
                    break
            else:
                distribution["100+"] += 1

        return PriceStatistics(
            min=round_money(prices[0]),
            max=round_money(prices[-1]),
            average=round_money(sum(prices) / n),
            median=round_money(median),
            distribution=distribution,
        )

    def extract_ingredients(self, text: str) -> List[IngredientCount]:
        """Ingredientes do vocabulario fixo, do mais frequente ao menos"""
        lowered = (text or "").lower()
        found = [
            IngredientCount(ingredient=ingredient, count=lowered.count(ingredient))
            for ingredient in INGREDIENTS
            if ingredient in lowered
        ]
        return sorted(found, key=lambda i: i.count, reverse=True)

    def detect_categories(self, text: str) -> List[MenuCategory]:
        """Categorias por frequencia de palavras-chave no texto livre"""
        words = tokenize(text or "")
        if not words:
            return []

        scores = {}
        for category, keywords in FREQUENCY_KEYWORDS.items():
            matches = sum(1 for w in words if any(k in w for k in keywords))
            if matches:
                scores[category] = matches / len(words)

        return sorted(scores, key=lambda c: scores[c], reverse=True)

    def detect_establishment_type(self, text: str) -> str:
        learned = self._learned_establishment(text)
        if learned is not None:
            return learned

        normalized = normalize_text(text or "")
        for establishment, keywords in ESTABLISHMENT_TYPES.items():
            if any(normalize_text(k) in normalized for k in keywords):
                return establishment
        return DEFAULT_ESTABLISHMENT

    def learn(self, text: str, establishment_type: str, correct: bool = True) -> TrainingExample:
        """
        Registra o tipo de estabelecimento confirmado (ou rejeitado) para um cardapio

        Exemplos confirmados passam a ter prioridade sobre as palavras-chave fixas
        em detect_establishment_type.
        """
        example = TrainingExample(
            keywords=sorted(set(tokenize(text or ""))),
            establishment_type=establishment_type,
            confidence=LEARNED_CONFIDENCE_CORRECT if correct else LEARNED_CONFIDENCE_WRONG,
        )
        self.training_examples.append(example)
        logger.info(
            "menu_example_learned",
            establishment_type=establishment_type,
            correct=correct,
            total=len(self.training_examples),
        )
        return example

    def _learned_establishment(self, text: str) -> Optional[str]:
        words = set(tokenize(text or ""))
        if not words:
            return None

        best: Optional[str] = None
        best_score = 0.0
        for example in self.training_examples:
            if example.confidence < LEARNED_MIN_CONFIDENCE or not example.keywords:
                continue
            overlap = len(words.intersection(example.keywords)) / len(example.keywords)
            score = overlap * example.confidence
            if overlap >= LEARNED_MIN_OVERLAP and score > best_score:
                best, best_score = example.establishment_type, score
        return best

    def get_model_stats(self) -> Dict[str, Any]:
        return {
            "training_examples": len(self.training_examples),
            "confirmed": sum(1 for e in self.training_examples if e.confidence >= LEARNED_MIN_CONFIDENCE),
        }

    def analyze(self, text: str) -> MenuAnalysis:
        """
        Analise completa do cardapio

        Returns:
            MenuAnalysis (vazio para texto vazio)
        """
        if not text or not text.strip():
            return MenuAnalysis()

        items = self.extract_items(text)
        categories = self.categorize(items)

        category_names = [c.value for c in categories if c != MenuCategory.OTHER]
        for category in self.detect_categories(text):
            if category.value not in category_names:
                category_names.append(category.value)

        categorized_items = [item for group in categories.values() for item in group]

        analysis = MenuAnalysis(
            items=categorized_items,
            categories=categories,
            category_names=category_names,
            price_statistics=self.price_statistics(items),
            ingredients=self.extract_ingredients(text),
            establishment_type=self.detect_establishment_type(text),
            item_count=len(items),
        )

        logger.info(
            "menu_analyzed",
            items=analysis.item_count,
            categories=category_names,
            establishment_type=analysis.establishment_type,
        )
        return analysis
