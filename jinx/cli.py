from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ruamel.yaml import YAML

from .config import ConfigLoadError, EnvironmentConfig, load_config
from .environment import Environment
from .errors import TemplateError
from .runtime.undefined import StrictUndefined
from .version import tool_version

_yaml = YAML(typ="safe")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="jinx",
        description="jinx: Jinja-style template engine",
        add_help=True,
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {tool_version()}")
    p.add_argument("-v", "--verbose", action="store_true", help="подробный лог (DEBUG) в stderr")
    sub = p.add_subparsers(dest="cmd", required=True)

    # Общие аргументы: откуда брать шаблон и настройки
    def add_common(sp: argparse.ArgumentParser) -> None:
        sp.add_argument(
            "template",
            help="путь к файлу шаблона, имя в пути поиска (с --config/--search-path) или - для stdin",
        )
        sp.add_argument("--config", type=Path, metavar="FILE", help="YAML файл настроек окружения")
        sp.add_argument(
            "--search-path",
            action="append",
            metavar="DIR",
            help="каталог поиска шаблонов (можно указать несколько)",
        )

    sp_render = sub.add_parser("render", help="Отрендерить шаблон в stdout")
    add_common(sp_render)
    sp_render.add_argument(
        "--var",
        action="append",
        metavar="KEY=VALUE",
        help="переменная шаблона (строка; можно указать несколько)",
    )
    sp_render.add_argument("--data", type=Path, metavar="FILE", help="переменные из JSON или YAML файла")
    sp_render.add_argument("--strict", action="store_true", help="ошибка при обращении к неопределённой переменной")
    sp_render.add_argument("--block", metavar="NAME", help="отрендерить только указанный блок")

    sp_tokens = sub.add_parser("tokens", help="Сырые токены лексера")
    add_common(sp_tokens)

    sp_ast = sub.add_parser("ast", help="AST шаблона после разбора")
    add_common(sp_ast)

    return p


def _environment(ns: argparse.Namespace) -> Tuple[Environment, Optional[str]]:
    """Окружение и имя шаблона в его пути поиска (None - шаблон из stdin)."""
    template: str = ns.template
    cfg = load_config(ns.config) if ns.config is not None else EnvironmentConfig()
    if ns.search_path:
        cfg = dataclasses.replace(cfg, search_path=[str(Path(p).resolve()) for p in ns.search_path])
    elif ns.config is None and template != "-":
        # Без настроек шаблон - путь к файлу; его каталог становится путём поиска
        path = Path(template).resolve()
        cfg = dataclasses.replace(cfg, search_path=[str(path.parent)])
        template = path.name
    overrides: Dict[str, Any] = {}
    if getattr(ns, "strict", False):
        overrides["undefined"] = StrictUndefined
    env = cfg.create_environment(**overrides)
    return env, (None if template == "-" else template)


def _read_source(env: Environment, name: Optional[str]) -> str:
    if name is None:
        return sys.stdin.read()
    if env.loader is None:
        raise ValueError(f"Cannot read template {name!r}: no template search path configured")
    return env.loader.get_source(env, name).source


def _parse_vars(pairs: Optional[list[str]]) -> Dict[str, str]:
    """Парсит список 'key=value' в словарь."""
    result: Dict[str, str] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Invalid variable format '{pair}'. Expected 'key=value'")
        key, value = pair.split("=", 1)
        result[key.strip()] = value
    return result


def _load_data(path: Optional[Path]) -> Dict[str, Any]:
    """Переменные из файла: ``.json`` - JSON, иначе YAML."""
    if path is None:
        return {}
    if not path.is_file():
        raise ValueError(f"Data file not found: {path}")
    text = path.read_text(encoding="utf-8")
    data = json.loads(text) if path.suffix == ".json" else _yaml.load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Data file must contain a mapping: {path}")
    return data


def _render(ns: argparse.Namespace) -> int:
    env, name = _environment(ns)
    variables = _load_data(ns.data)
    variables.update(_parse_vars(ns.var))
    if name is None:
        template = env.from_string(sys.stdin.read())
    else:
        template = env.get_template(name)
    if ns.block:
        sys.stdout.write(template.render_block(ns.block, variables))
    else:
        template.render_to(sys.stdout, variables)
    return 0


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    if ns.verbose:
        logging.basicConfig(level=logging.DEBUG, format="[%(levelname)s] %(name)s: %(message)s")

    try:
        if ns.cmd == "render":
            return _render(ns)

        if ns.cmd == "tokens":
            env, name = _environment(ns)
            for token in env.lex(_read_source(env, name), name):
                sys.stdout.write(f"{token.line}:{token.column}\t{token.type.value}\t{token.value!r}\n")
            return 0

        if ns.cmd == "ast":
            env, name = _environment(ns)
            sys.stdout.write(env.parse(_read_source(env, name), name).dump() + "\n")
            return 0

    except TemplateError as e:
        sys.stderr.write(f"{type(e).__name__}: {e}".rstrip() + "\n")
        return 2
    except (ConfigLoadError, ValueError, OSError) as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
