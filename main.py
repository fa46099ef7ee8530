#!/usr/bin/env python3
"""
PDF Stream Annotator MCP Server
Turns streamed tutor answers into highlight/circle annotations and page
navigation cues, and bridges stream context between the prepare and stream steps.
"""

import logging

from pdf_stream_annotator.core.config import config_from_args, parse_arguments
from pdf_stream_annotator.core.paths import SEARCH_DIRECTORIES, setup_search_directories
from pdf_stream_annotator.tools import mcp_tools

# --- Basic Configuration ---
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("PDFStreamAnnotator")


def main():
    """
    Configures logging, directories and the pipeline, then runs the MCP server.
    """
    args = parse_arguments()

    logging.getLogger().setLevel(getattr(logging, args.log_level))
    if args.debug:
        logging.getLogger("pdf_stream_annotator").setLevel(logging.DEBUG)

    setup_search_directories(args)
    config = config_from_args(args)
    mcp_tools.configure(config)

    logger.info(f"Starting PDF Stream Annotator MCP Server ({args.transport})...")
    logger.info(f"Accessible directories: {SEARCH_DIRECTORIES or 'none (page context disabled)'}")
    logger.info(f"Pipeline configuration: {config.as_dict()}")

    mcp_tools.mcp.run(transport=args.transport)


if __name__ == "__main__":
    main()
