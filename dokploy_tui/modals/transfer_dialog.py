"""Two-step export / import dialogs driven by the controller's wizards."""

from __future__ import annotations

from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Input, Label

from ..transfer import WizardStep
from .select_list import SelectList

_DIALOG_CSS = """
{name} {{
    align: center middle;
}}

{name} #transfer-dialog {{
    width: 70;
    max-width: 90%;
    height: auto;
    max-height: 80%;
    background: $surface;
    border: tall $primary;
    padding: 1 2;
}}

{name} #transfer-title {{
    text-style: bold;
    width: 100%;
    margin-bottom: 1;
}}

{name} #transfer-error {{
    color: $error;
    height: auto;
}}

{name} #transfer-keys {{
    color: $text-muted;
    margin-top: 1;
}}
"""


class _TransferDialog(ModalScreen[bool]):
    """Shared layout: a checkbox list and a path input, one visible per step."""

    BINDINGS = [
        Binding("enter", "advance", "Next", show=False),
        Binding("escape", "back", "Back", show=False),
    ]

    TITLE_TEXT = ""

    def __init__(self, controller) -> None:
        super().__init__()
        self._controller = controller

    @property
    def wizard(self):
        raise NotImplementedError

    def compose(self) -> ComposeResult:
        with Vertical(id="transfer-dialog"):
            yield Label("", id="transfer-title")
            yield Label("", id="transfer-hint")
            yield SelectList(self.wizard.select, id="transfer-select")
            yield Input(value=self.wizard.path, placeholder="path/to/file.json", id="transfer-path")
            yield Label("", id="transfer-error")
            yield Label("", id="transfer-keys")

    def on_mount(self) -> None:
        self._sync()

    def _title(self) -> str:
        return self.TITLE_TEXT

    def _total_steps(self) -> int:
        return 2

    def _step_number(self) -> int:
        raise NotImplementedError

    def _hint(self) -> str:
        raise NotImplementedError

    def _sync(self) -> None:
        wizard = self.wizard
        selecting = wizard.step is WizardStep.SELECT
        title = f"{self._title()} - Step {self._step_number()}/{self._total_steps()}"
        self.query_one("#transfer-title", Label).update(title)
        self.query_one("#transfer-hint", Label).update(self._hint())

        select_list = self.query_one("#transfer-select", SelectList)
        select_list.select = wizard.select
        select_list.redraw()
        select_list.display = selecting

        path_input = self.query_one("#transfer-path", Input)
        path_input.display = not selecting
        self.query_one("#transfer-error", Label).update(wizard.error or "")
        if selecting:
            keys = "space toggle  a all  n none  Enter next  Esc "
            keys += "back" if self._step_number() == 2 else "cancel"
            select_list.focus()
        else:
            keys = "Enter confirm  Esc "
            keys += "back" if self._step_number() > 1 else "cancel"
            path_input.focus()
        self.query_one("#transfer-keys", Label).update(keys)

    def _start(self) -> bool:
        raise NotImplementedError

    def action_advance(self) -> None:
        if self.wizard.step is WizardStep.PATH:
            self.wizard.set_path(self.query_one("#transfer-path", Input).value)
        if self._start():
            self.dismiss(True)
        else:
            self._sync()

    @on(Input.Submitted, "#transfer-path")
    def _on_path_submitted(self) -> None:
        self.action_advance()

    def action_back(self) -> None:
        raise NotImplementedError


class ExportDialog(_TransferDialog):
    """select → path, or the path step alone for one application."""

    DEFAULT_CSS = _DIALOG_CSS.format(name="ExportDialog")
    TITLE_TEXT = "Export Project"

    @property
    def wizard(self):
        return self._controller.export_wizard

    def _title(self) -> str:
        return "Export Application" if self.wizard.single_application else self.TITLE_TEXT

    def _total_steps(self) -> int:
        return 1 if self.wizard.single_application else 2

    def _step_number(self) -> int:
        if self.wizard.single_application:
            return 1
        return 1 if self.wizard.step is WizardStep.SELECT else 2

    def _hint(self) -> str:
        if self.wizard.step is WizardStep.SELECT:
            return "Select services to export:"
        if self.wizard.single_application:
            return "Output path:"
        return f"Exporting {self.wizard.select.selected_count} service(s). Output path:"

    def _start(self) -> bool:
        return self._controller.export_advance()

    def action_back(self) -> None:
        if self.wizard.step is WizardStep.PATH and not self.wizard.single_application:
            self.wizard.set_path(self.query_one("#transfer-path", Input).value)
            self.wizard.back()
            self._sync()
        else:
            self._controller.close_export()
            self.dismiss(False)


class ImportDialog(_TransferDialog):
    """path → select; application files import straight from the path step."""

    DEFAULT_CSS = _DIALOG_CSS.format(name="ImportDialog")
    TITLE_TEXT = "Import Services"

    @property
    def wizard(self):
        return self._controller.import_wizard

    def _step_number(self) -> int:
        return 1 if self.wizard.step is WizardStep.PATH else 2

    def _hint(self) -> str:
        env = self.wizard.environment
        target = f" into {env.name}" if env is not None else ""
        if self.wizard.step is WizardStep.PATH:
            return f"Export file to import{target}:"
        source = self.wizard.source_name or "project"
        return f"Services from {source} to import{target}:"

    def _start(self) -> bool:
        return self._controller.import_advance()

    def action_back(self) -> None:
        if self.wizard.step is WizardStep.SELECT:
            self.wizard.back()
            self._sync()
        else:
            self._controller.close_import()
            self.dismiss(False)
