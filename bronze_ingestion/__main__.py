import sys

from bronze_ingestion.lambda_handler import main

sys.exit(main())
