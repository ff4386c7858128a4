"""
Producer Module Entry Point

Allows execution via: python -m apps.producer <pdf_file_paths> <output_path>
"""

from apps.producer.cli import app

if __name__ == "__main__":
    app(prog_name="apps.producer")
