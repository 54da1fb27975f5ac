from typing import Any, Mapping

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header

from ticketmark.config import CONFIGURATION, ApplicationConfiguration
from ticketmark.models import EnrichedTicketMetadata
from ticketmark.utils.urls import build_work_item_url
from ticketmark.widgets.adf_document_view import AdfDocumentView


class DocumentViewerApp(App):
    """Displays a single ADF document."""

    TITLE = 'ticketmark'
    BINDINGS = [
        Binding(key='q', action='quit', description='Quit'),
    ]

    def __init__(
        self,
        settings: ApplicationConfiguration,
        document: Any,
        enriched_metadata: Mapping[str, EnrichedTicketMetadata | dict] | None = None,
    ):
        super().__init__()
        self.settings = settings
        CONFIGURATION.set(settings)
        self.document = document
        self.enriched_metadata = enriched_metadata

    def compose(self) -> ComposeResult:
        yield Header()
        yield AdfDocumentView(
            self.document,
            enriched_metadata=self.enriched_metadata,
            code_theme=self.settings.code_theme,
        )
        yield Footer()

    @on(AdfDocumentView.ReferenceActivated)
    def show_reference(self, message: AdfDocumentView.ReferenceActivated) -> None:
        if self.settings.base_url:
            url = build_work_item_url(message.key, self.settings.base_url)
            self.notify(url, title=message.key)
        else:
            self.notify(message.key)
