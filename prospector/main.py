"""
Prospector - Main Entry Point
Ponto de entrada de linha de comando

Uso:
    python -m prospector.main --cnpj 11.222.333/0001-81 --instagram @pizzaria
    python -m prospector.main --history
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from config.settings import settings
from prospector.exceptions import (
    AllProvidersFailedError,
    InvalidInputError,
    ProspectorError,
    RateLimitError,
)
from prospector.models import ProspectInput
from prospector.services import ProspectAnalysisService, ProspectHistory


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Configura o structlog a partir das settings"""
    level = (level or settings.log_level).upper()
    fmt = fmt or settings.log_format

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer()
            if fmt == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level, logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prospector",
        description="Analise de prospects para atacado alimenticio",
    )
    parser.add_argument("--cnpj", help="CNPJ do prospect (com ou sem mascara)")
    parser.add_argument("--instagram", help="Handle ou URL do Instagram")
    parser.add_argument("--facebook", help="URL ou ID da pagina do Facebook")
    parser.add_argument("--website", help="Site do estabelecimento")
    parser.add_argument("--menu-file", type=Path, help="Arquivo texto com o cardapio")
    parser.add_argument("--ai-menu", action="store_true", help="Usa IA para sugerir produtos pelo cardapio")
    parser.add_argument("--no-history", action="store_true", help="Nao grava no historico")
    parser.add_argument("--history", action="store_true", help="Mostra o historico e as metricas")
    parser.add_argument("--log-level", default=None)
    return parser


def show_history(limit: int = 10) -> dict:
    history = ProspectHistory()
    return {
        "metrics": history.get_metrics(),
        "analytics": history.analytics,
        "prospects": history.list_prospects(limit),
    }


async def run(args: argparse.Namespace) -> str:
    """Executa a analise e retorna o JSON do resultado"""
    menu_text = args.menu_file.read_text(encoding="utf-8") if args.menu_file else None
    prospect = ProspectInput(
        tax_id=args.cnpj,
        instagram=args.instagram,
        facebook=args.facebook,
        website=args.website,
        menu_text=menu_text,
    )

    history = None if args.no_history else ProspectHistory()
    service = ProspectAnalysisService(history=history, use_ai_menu=args.ai_menu)
    try:
        result = await service.analyze(prospect)
    finally:
        await service.close()

    return result.model_dump_json(indent=2)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    logger.info("prospector_start", environment=settings.environment)

    if args.history:
        print(json.dumps(show_history(), ensure_ascii=False, indent=2))
        return 0

    if not args.cnpj:
        parser.error("--cnpj e obrigatorio")

    try:
        output = asyncio.run(run(args))
    except InvalidInputError as e:
        print(f"Entrada invalida: {e}", file=sys.stderr)
        return 2
    except RateLimitError as e:
        print(f"Limite de consultas atingido, tente em {e.retry_after:.0f}s", file=sys.stderr)
        return 3
    except AllProvidersFailedError as e:
        print(f"Nenhum provedor de CNPJ respondeu: {e}", file=sys.stderr)
        return 4
    except ProspectorError as e:
        logger.error("prospector_failed", error=str(e))
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
