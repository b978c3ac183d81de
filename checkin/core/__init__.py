"""Process execution, git access and orchestration."""
