import argparse
import json
import logging
import sys

from tqdm import tqdm

from .config import DEFAULT_LANGUAGE, DEFAULT_MAX_PROPERTIES, DEFAULT_QUERY_LIMIT, load_settings
from .errors import WikimindError
from .manager import Wikimind

logger = logging.getLogger(__name__)


def _emit(payload):
    if isinstance(payload, str):
        print(payload)
        return
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def run_query(mind, args):
    query = mind.query().lang(args.lang).limit(args.limit).distinct(args.distinct)
    if args.select:
        query = query.select(args.select)
    for subject, predicate, obj in args.where or []:
        query = query.where(subject, predicate, obj)
    for subject, predicate, obj in args.optional or []:
        query = query.optional(subject, predicate, obj)
    for expression in args.filter or []:
        query = query.filter(expression)
    if args.order_by:
        query = query.order_by(args.order_by, "desc" if args.desc else "asc")
    if args.dry_run:
        return query.build()
    result = query.get(args.format)
    if args.format in {"records", "collection"}:
        return [vars(row) for row in result]
    return result


def run_profiles(mind, args):
    profiles = {}
    for entity_id in tqdm(args.ids, desc="Profiles", unit="entity", disable=not sys.stderr.isatty()):
        profiles[entity_id] = mind.short_profile(entity_id, args.lang)
    return profiles


COMMANDS = {
    "entity": lambda mind, args: mind.entity(args.id),
    "search": lambda mind, args: mind.search(args.text, args.lang, args.type, args.limit),
    "label": lambda mind, args: mind.label(args.id, args.lang),
    "structured": lambda mind, args: mind.structured_info(args.id, args.lang, args.max_properties),
    "pick": lambda mind, args: mind.pick_info(args.id, args.properties, args.lang),
    "pick-by-name": lambda mind, args: mind.pick_info_by_name(args.name, args.properties, args.lang, args.limit),
    "profile": run_profiles,
    "suggest": lambda mind, args: mind.smart_suggest(args.text, args.lang, args.type, args.limit),
    "entity-id": lambda mind, args: mind.get_entity_id(args.name, args.lang),
    "query": run_query,
}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Structured Wikidata lookups and SPARQL queries.")
    parser.add_argument("--config", default=None, help="JSON settings file (endpoints, retries, cache).")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    def with_lang(p):
        p.add_argument("--lang", default=DEFAULT_LANGUAGE, help="Label language code.")
        return p

    sub.add_parser("entity", help="Raw entity record.").add_argument("id")

    p = with_lang(sub.add_parser("search", help="Entity search hits."))
    p.add_argument("text")
    p.add_argument("--type", default="item")
    p.add_argument("--limit", type=int, default=10)

    with_lang(sub.add_parser("label", help="Entity label.")).add_argument("id")

    p = with_lang(sub.add_parser("structured", help="Readable {property: values} map."))
    p.add_argument("id")
    p.add_argument("--max-properties", type=int, default=DEFAULT_MAX_PROPERTIES)

    p = with_lang(sub.add_parser("pick", help="Selected properties of an entity."))
    p.add_argument("id")
    p.add_argument("properties", nargs="+")

    p = with_lang(sub.add_parser("pick-by-name", help="Selected properties of the first search hit."))
    p.add_argument("name")
    p.add_argument("properties", nargs="+")
    p.add_argument("--limit", type=int, default=2)

    p = with_lang(sub.add_parser("profile", help="Label, description and sitelink for one or more ids."))
    p.add_argument("ids", nargs="+")

    p = with_lang(sub.add_parser("suggest", help="Label suggestions for a search text."))
    p.add_argument("text")
    p.add_argument("--type", default="item")
    p.add_argument("--limit", type=int, default=5)

    with_lang(sub.add_parser("entity-id", help="Id of the first search hit.")).add_argument("name")

    p = with_lang(sub.add_parser("query", help="Build and run a SPARQL query."))
    p.add_argument("--select", nargs="*", default=[], help="Variables to select (without '?').")
    p.add_argument("--where", nargs=3, action="append", metavar=("S", "P", "O"))
    p.add_argument("--optional", nargs=3, action="append", metavar=("S", "P", "O"))
    p.add_argument("--filter", action="append", help="Raw FILTER expression.")
    p.add_argument("--limit", type=int, default=DEFAULT_QUERY_LIMIT)
    p.add_argument("--order-by", default=None)
    p.add_argument("--desc", action="store_true")
    p.add_argument("--distinct", action="store_true")
    p.add_argument("--format", default="array", choices=["raw", "array", "json", "records", "collection"])
    p.add_argument("--dry-run", action="store_true", help="Print the SPARQL text without executing it.")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    try:
        mind = Wikimind(load_settings(args.config))
        logger.debug("[*] Running %s", args.command)
        _emit(COMMANDS[args.command](mind, args))
    except WikimindError as exc:
        print(f"[!] {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"[!] {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
