#!/usr/bin/env python3
import sys
import os

print("Running preflight import check...")
try:
    # Set dummy env vars to avoid KeyErrors during config load if any
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

    import support_form.main
    print("Import support_form.main: OK")

    from support_form.gql.schema import schema
    print(f"GraphQL schema built: OK ({len(schema.graphql_schema.mutation_type.fields)} mutations)")

    import support_form.queue.jobs
    print("Import support_form.queue.jobs: OK")

    print("Preflight check passed.")
    sys.exit(0)
except Exception as e:
    print(f"Preflight check FAILED: {e}")
    import traceback
    traceback.print_exc()
    sys.exit(1)
