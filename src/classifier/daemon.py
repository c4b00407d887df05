"""
Vote Document Classification Daemon
===================================

Entry point for the classifier. On startup it prepares the working
directories, loads the document store, renders the labelled samples and
discovers new PDFs. It then polls the store every few seconds and classifies
each unclassified document against the samples, one document at a time,
until it receives SIGINT or SIGTERM.
"""

from __future__ import annotations

import signal
import sys
import threading

import structlog

from common.config import Settings, ensure_directories, setup_libraries
from common.daemon_loop import run_polling_loop
from common.errors import RenderError, StorageError
from common.logging_config import configure_logging
from common.render import PdfRenderer
from docstore.models import Document
from docstore.store import DocumentStore
from .discovery import discover_documents
from .provider import ClassificationProvider
from .samples import SampleRegistry
from .worker import ClassificationEngine, DocumentClassifier


def _unclassified_documents(store: DocumentStore) -> list[Document]:
    """List the store fresh and keep documents without a label."""
    return [doc for doc in store.list() if not doc.is_classified]


def _install_signal_handlers(stop_event: threading.Event) -> None:
    log = structlog.get_logger(__name__)

    def handle(signum, _frame):
        log.info("Stop signal received", signal=signal.Signals(signum).name)
        stop_event.set()

    if threading.current_thread() is not threading.main_thread():
        return
    signal.signal(signal.SIGTERM, handle)
    signal.signal(signal.SIGINT, handle)


def main(stop_event: threading.Event | None = None) -> None:
    """Main loop for the classification daemon."""
    log = structlog.get_logger(__name__)

    try:
        settings = Settings()
        configure_logging(settings)
        setup_libraries(settings)
    except ValueError as e:
        log.error("Configuration error", error=str(e))
        sys.exit(1)

    log.info(
        "Starting classification daemon",
        pdf_path=settings.PDF_PATH,
        image_path=settings.IMAGE_PATH,
        store_path=settings.STORE_PATH,
        poll_interval=settings.POLL_INTERVAL,
        llm_provider=settings.LLM_PROVIDER,
        ai_models=settings.AI_MODELS,
        labels=list(settings.SAMPLE_DATA),
    )

    store = DocumentStore(settings.STORE_PATH)
    renderer = PdfRenderer(settings)
    try:
        ensure_directories(settings)
        store.initialize()
        registry = SampleRegistry.load(
            settings.SAMPLE_DATA,
            settings.SAMPLES_PATH,
            settings.IMAGE_PATH,
            renderer,
        )
        discover_documents(store, settings.PDF_PATH, settings.IMAGE_PATH, renderer)
    except (OSError, StorageError, RenderError, ValueError) as e:
        log.error("Initialization error", error=str(e))
        sys.exit(1)

    engine = ClassificationEngine(ClassificationProvider(settings), registry)
    classifier = DocumentClassifier(store, engine)

    if stop_event is None:
        stop_event = threading.Event()
        _install_signal_handlers(stop_event)

    run_polling_loop(
        daemon_name="classifier",
        fetch_work=lambda: _unclassified_documents(store),
        process_item=classifier.process,
        poll_interval_seconds=settings.POLL_INTERVAL,
        stop_event=stop_event,
    )
    log.info("Done", document_count=store.count())


if __name__ == "__main__":
    main()
