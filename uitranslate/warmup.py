"""
Translation warm-up and import.

Registers UI strings from YAML files, imports existing translations, then
pre-translates everything into a list of languages so visitors never wait for
a cold string.

Run on:
- Deploy (recommended)
- Cron job (to catch new strings)

String files map keys to default text; nested mappings are flattened with
dots, so ``home: {title: Welcome}`` registers ``home.title``.

Usage:
    # CLI
    python -m uitranslate.warmup --strings config/strings.yaml --languages fr de
    python -m uitranslate.warmup --strings config/ --import fr=config/fr.yaml

    # Code
    stats = await run_warmup(settings, ["config/strings.yaml"], languages=["fr"])
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Any

import yaml

from uitranslate.cache import TranslationCache
from uitranslate.config import Settings, get_settings
from uitranslate.core.models import TranslationProgress, TranslationSource
from uitranslate.integrations.sentry import configure_logging
from uitranslate.languages import get_language_name, normalize_language_code
from uitranslate.providers import ProviderFactory, create_provider_factory
from uitranslate.services.translation import TranslationService
from uitranslate.storage import StoreFactory, create_store_factory

logger = logging.getLogger(__name__)


# =============================================================================
# Loaders
# =============================================================================


def flatten_strings(data: Any, prefix: str = "") -> dict[str, str]:
    """Flatten nested mappings into dotted keys. Non-string leaves are skipped."""
    strings: dict[str, str] = {}
    if not isinstance(data, dict):
        return strings

    for name, value in data.items():
        key = f"{prefix}.{name}" if prefix else str(name)
        if isinstance(value, dict):
            strings.update(flatten_strings(value, key))
        elif isinstance(value, str) and value.strip():
            strings[key] = value
    return strings


def load_string_file(path: str | Path) -> dict[str, str]:
    with open(path, encoding="utf-8") as f:
        return flatten_strings(yaml.safe_load(f))


def load_string_files(paths: list[str]) -> dict[str, str]:
    """Load YAML files, or every ``*.yaml`` / ``*.yml`` in a directory."""
    strings: dict[str, str] = {}
    for raw_path in paths:
        path = Path(raw_path)
        if path.is_dir():
            files = sorted([*path.glob("*.yaml"), *path.glob("*.yml")])
        elif path.exists():
            files = [path]
        else:
            logger.warning("String file not found: %s", path)
            continue

        for yaml_file in files:
            try:
                loaded = load_string_file(yaml_file)
            except (OSError, yaml.YAMLError):
                logger.exception("Error loading %s", yaml_file)
                continue
            strings.update(loaded)
            logger.info("Loaded %d strings from %s", len(loaded), yaml_file.name)
    return strings


def parse_import_arg(value: str) -> tuple[str, str]:
    """Parse ``lang=path`` from the command line."""
    language, sep, path = value.partition("=")
    if not sep or not language.strip() or not path.strip():
        raise argparse.ArgumentTypeError(f"expected LANG=PATH, got {value!r}")
    return normalize_language_code(language), path.strip()


# =============================================================================
# Steps
# =============================================================================


async def register_strings(service: TranslationService, strings: dict[str, str]) -> int:
    """Ensure every key exists with its current default text."""
    for key, text in strings.items():
        await service.ensure_key(key, text)
    return len(strings)


async def import_translations(
    service: TranslationService,
    language_code: str,
    translations: dict[str, str],
) -> int:
    """Store existing translations with provenance ``imported``. Unknown keys are skipped."""
    imported = 0
    for key, text in translations.items():
        if await service.set_translation(key, language_code, text, source=TranslationSource.IMPORTED):
            imported += 1
    return imported


async def warm_languages(
    service: TranslationService,
    languages: list[str],
    overwrite: bool = False,
    verbose: bool = True,
) -> dict[str, int]:
    """Run ``translate_all`` for each language. Returns counts per language."""

    def report(progress: TranslationProgress) -> None:
        if verbose:
            print(f"   {progress.completed}/{progress.total} strings", end="\r")

    counts: dict[str, int] = {}
    for language in languages:
        if verbose:
            print(f"\n🌍 Translating to {get_language_name(language)} ({language})...")
        counts[language] = await service.translate_all(language, overwrite_existing=overwrite, progress=report)
        if verbose:
            print(f"   ✓ {language}: {counts[language]} new translations")
    return counts


async def run_warmup(
    settings: Settings,
    string_paths: list[str] | None = None,
    imports: list[tuple[str, str]] | None = None,
    languages: list[str] | None = None,
    overwrite: bool = False,
    verbose: bool = True,
    store_factory: StoreFactory | None = None,
    provider_factory: ProviderFactory | None = None,
) -> dict[str, Any]:
    """
    Register strings, import translations and pre-translate.

    Returns:
        Stats dict with counts
    """
    store = (store_factory or create_store_factory(settings))()
    provider = (provider_factory or create_provider_factory(settings))()
    service = TranslationService(
        store,
        provider,
        TranslationCache(enabled=False),
        default_language=settings.default_language,
    )

    languages = [normalize_language_code(lang) for lang in languages or []]
    languages = [lang for lang in languages if lang != service.default_language]

    stats: dict[str, Any] = {"registered": 0, "imported": 0, "translated": {}}

    try:
        if string_paths:
            stats["registered"] = await register_strings(service, load_string_files(string_paths))
            if verbose:
                print(f"📚 Registered {stats['registered']} strings")

        for language, path in imports or []:
            translations = load_string_files([path])
            count = await import_translations(service, language, translations)
            stats["imported"] += count
            if verbose:
                print(f"📥 Imported {count} {language} translations from {path}")

        if languages:
            stats["translated"] = await warm_languages(service, languages, overwrite=overwrite, verbose=verbose)
    finally:
        await provider.aclose()

    if settings.storage_type == "memory":
        logger.warning("Storage is in-memory; warm-up results are discarded on exit")

    return stats


# =============================================================================
# CLI Entry Point
# =============================================================================


def main(argv: list[str] | None = None) -> None:
    """Run warm-up from command line."""
    parser = argparse.ArgumentParser(description="Register, import and pre-translate UI strings")
    parser.add_argument(
        "--strings", "-s",
        nargs="+",
        default=[],
        help="YAML files or directories with key -> default text",
    )
    parser.add_argument(
        "--import", "-i",
        dest="imports",
        nargs="+",
        default=[],
        type=parse_import_arg,
        metavar="LANG=PATH",
        help="Existing translations to import",
    )
    parser.add_argument(
        "--languages", "-l",
        nargs="+",
        default=[],
        help="Languages to pre-translate",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Re-translate strings that already have a translation",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimal output",
    )

    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    asyncio.run(run_warmup(
        settings,
        string_paths=args.strings,
        imports=args.imports,
        languages=args.languages,
        overwrite=args.overwrite,
        verbose=not args.quiet,
    ))


if __name__ == "__main__":
    main()
