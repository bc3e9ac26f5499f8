"""Contact-centre reporting tool - Entry point."""

from dotenv import load_dotenv

from cc_reports.cli import app

# Load CC_REPORTS_* settings from a .env file
load_dotenv()

if __name__ == "__main__":
    app()
