import json

from django.core.management.base import BaseCommand, CommandError

from staff.services.access import ACTIONS, EXTRA_ACTIONS, normalize_permissions, resolve_permission, submodule_matcher


class Command(BaseCommand):
    help = "Print the resolved action matrix of a saved permission snapshot."

    def add_arguments(self, parser):
        parser.add_argument("snapshot", help="JSON file: a permissions list or the clinic API response")
        parser.add_argument("--module", required=True, help="module key, prefixed or not")
        parser.add_argument("--sub", default=None, help="submodule name")
        parser.add_argument("--all-actions", action="store_true", help="include approve/print/export")

    def handle(self, *args, **opts):
        try:
            with open(opts["snapshot"], encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, ValueError) as e:
            raise CommandError(f"cannot read snapshot: {e}")
        if isinstance(raw, dict):
            raw = (raw.get("data") or {}).get("permissions") or raw.get("permissions") or []
        permissions = normalize_permissions(raw)

        matcher = submodule_matcher(opts["sub"]) if opts["sub"] else None
        actions = ACTIONS + (EXTRA_ACTIONS if opts["all_actions"] else ())
        target = opts["module"] + (f" / {opts['sub']}" if opts["sub"] else "")
        self.stdout.write(f"{target} ({len(permissions)} module records)")
        for action in actions:
            allowed = resolve_permission(permissions, opts["module"], matcher, action)
            style = self.style.SUCCESS if allowed else self.style.ERROR
            self.stdout.write(style(f"  {action:<8} {'allow' if allowed else 'deny'}"))
