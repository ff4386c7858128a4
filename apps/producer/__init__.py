"""
Producer App - PDF Job Submission

Responsibilities:
- Validate a comma-separated list of local PDF files
- Build a job (ID, creation time, aligned path and name lists, output directory)
- Publish the job to the Redis job stream, keyed by job ID
- Retry failed publishes up to SUBMIT_MAX_ATTEMPTS with SUBMIT_RETRY_DELAY between attempts

Output:
- Redis stream entry: stream=pdf-jobs, fields={key, payload}
"""
