# src/effective_workflow/cli/formatter.py
from dataclasses import asdict
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from effective_workflow.core.models import EffectiveWorkflow, Reference


class WorkflowPresenter:
    """
    WorkflowPresenter: renders resolved workflows and their incoming call sites.
    It only formats; every value it prints was computed by the resolver.
    """

    def __init__(self, console: Optional[Console] = None, error_console: Optional[Console] = None,
                 theme: str = "monokai"):
        self.console = console or Console()
        self.error_console = error_console or Console(stderr=True)
        self.theme = theme

    def render_heading(self, text: str):
        self.console.print(f"[bold cyan]{escape(text)}[/bold cyan]\n")

    def render_workflow(self, name: str, filename: str, ref: str, sha: str,
                        yaml_text: str, references: List[Reference]):
        """
        Prints 'name - filename@ref (sha)', the call-site table when there
        is one, then the highlighted YAML.
        """
        sha_str = f" ([grey50]{escape(sha)}[/grey50])" if sha else ""
        self.console.print(f"{escape(name)} - [grey50]{escape(filename)}[/grey50]@{escape(ref)}{sha_str}")

        if references:
            self.console.print()
            heading = "reference" if len(references) == 1 else "references"
            self.console.print(f"[grey50]{len(references)} {heading}[/grey50]")
            self.console.print(self._reference_table(references))

        self.console.print(Syntax(yaml_text, "yaml", theme=self.theme, background_color="default"))

    def _reference_table(self, references: List[Reference]) -> Table:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="grey50")
        table.add_column(style="grey50", justify="right")
        table.add_column()

        for ref in references:
            table.add_row(
                Text(ref.source_filename),
                f"{ref.source_line_number:4d}",
                Syntax(ref.source_line.strip(), "yaml", theme=self.theme, background_color="default"),
            )
        return table

    def render_effective_workflow(self, result: EffectiveWorkflow):
        top = result.top_level
        self.render_heading("Workflow file for this run")
        self.render_workflow(top.name, top.filename, top.ref, top.sha, top.yaml, [])

        for wf in result.reusable:
            self.console.print()
            self.render_heading("Called reusable workflow file")
            self.render_workflow(wf.name, wf.filename, wf.ref, wf.sha, wf.yaml, result.references_for(wf))

    def render_json(self, result: EffectiveWorkflow):
        payload = {
            "run": {
                "id": result.run.id,
                "workflow_id": result.run.workflow_id,
                "head_branch": result.run.head_branch,
                "head_sha": result.run.head_sha,
            },
            "workflow": asdict(result.top_level),
            "reusable_workflows": [asdict(wf) for wf in result.reusable],
            "references": {
                key: [asdict(ref) for ref in refs] for key, refs in result.references.items()
            },
        }
        self.console.print_json(data=payload)

    def render_error(self, message: str, hint: Optional[str] = None):
        body = Text()
        body.append(f"✗ {message}", style="bold red")
        if hint:
            body.append("\n\n→ ", style="bold yellow")
            body.append(hint, style="yellow")
        self.error_console.print(Panel(body, border_style="red", expand=False))
