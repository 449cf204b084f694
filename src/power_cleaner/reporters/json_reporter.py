"""JSON Reporter Implementation."""

import json

from power_cleaner.model.action import Action, RunReport
from power_cleaner.model.environment import Environment
from power_cleaner.reporters.base import BaseReporter


class JsonReporter(BaseReporter):
    """Generates machine-readable JSON output."""

    def _dump(self, data: object) -> None:
        # print_json would re-highlight; keep output byte-exact for pipes
        self.console.print(json.dumps(data, indent=2, default=str), markup=False, highlight=False, soft_wrap=True)

    def report_run(self, report: RunReport) -> None:
        data = report.to_dict()
        if self.show_output:
            for item, result in zip(data["results"], report.results):
                item["output"] = result.output
        self._dump(data)

    def report_environment(self, env: Environment) -> None:
        self._dump(
            {
                "distro_id": env.distro_id,
                "distro_like": list(env.distro_like),
                "os_family": env.os_family,
                "pretty_name": env.pretty_name,
                "arch": env.arch,
                "is_root": env.is_root,
                "package_manager": env.package_manager.name,
                "available_commands": sorted(env.available_commands),
            }
        )

    def report_actions(self, actions: list[Action], missing: dict[str, list[str]]) -> None:
        self._dump(
            [
                {
                    "name": a.name,
                    "description": a.description,
                    "category": a.category,
                    "interactive": a.interactive,
                    "required_commands": sorted(a.required_commands),
                    "has_verify": a.has_verify,
                    "missing": missing.get(a.name, []),
                }
                for a in actions
            ]
        )
