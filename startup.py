import os
import sys
import uvicorn
import logging
import traceback

# Configure logging to stdout until the app installs its own handler
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

# Add the src directory to Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(current_dir, 'src')
sys.path.insert(0, src_path)

logger.info("=" * 60)
logger.info("ClinicFlow startup")
logger.info("=" * 60)
logger.info(f"Python version: {sys.version.split()[0]}")
logger.info(f"Source path: {src_path}")

logger.info("Environment Configuration:")
for name in ("PORT", "APP_ENV", "LOG_LEVEL", "WORKFLOW_STORE", "WORKFLOW_STOCK_POLICY", "MONGO_DB_NAME"):
    logger.info(f"  {name}: {os.environ.get(name, 'not set')}")
logger.info(f"  MONGO_URI: {'set' if os.environ.get('MONGO_URI') else 'not set'}")


if __name__ == "__main__":
    try:
        from clinicflow.core.config import get_settings

        # Load settings first so validation errors surface before uvicorn starts
        logger.info("Loading application settings...")
        try:
            settings = get_settings()
        except ValueError as ve:
            logger.error(f"Configuration validation failed: {ve}")
            logger.error(traceback.format_exc())
            logger.error("Common configuration issues:")
            logger.error("  1. WORKFLOW_STOCK_POLICY must be 'clamp' or 'reject'")
            logger.error("  2. WORKFLOW_STORE must be 'memory' or 'mongo'")
            logger.error("  3. MONGO_URI must start with mongodb:// or mongodb+srv://")
            sys.exit(1)

        logger.info(f"  App name: {settings.app_name}")
        logger.info(f"  App version: {settings.app_version}")
        logger.info(f"  App environment: {settings.app_env}")
        logger.info(f"  Debug mode: {settings.debug}")

        host = settings.host
        port = int(os.environ.get("PORT", settings.port))
        logger.info(f"Starting uvicorn server on {host}:{port}...")
        uvicorn.run(
            "clinicflow.app:app",
            host=host,
            port=port,
            workers=1,
            log_level="info",
            access_log=True,
            timeout_keep_alive=75,
            timeout_graceful_shutdown=30,
        )
    except KeyboardInterrupt:
        logger.info("Shutting down due to keyboard interrupt")
        sys.exit(0)
    except Exception as e:
        logger.error(f"CRITICAL: Failed to start application: {type(e).__name__}: {e}")
        logger.error(traceback.format_exc())
        sys.exit(1)
