"""
Consumer App - Job Fan-Out and Text Extraction

Responsibilities:
- Read PDF jobs from the Redis job stream through a consumer group
- Validate each job before any work is launched (poison payloads are acked and dropped)
- Launch one extraction task per file, capped by a global concurrency ceiling
- Write extracted text to <output_path>/<name>.txt
- Drain in-flight extractions on SIGINT/SIGTERM before exiting

Output:
- One .txt file per successfully extracted input file
"""
