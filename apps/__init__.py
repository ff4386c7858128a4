"""Producer and consumer applications of the PDF extraction pipeline."""
