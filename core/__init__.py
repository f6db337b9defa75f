"""Contact relay pipeline: validation, sanitization and mail delivery."""
