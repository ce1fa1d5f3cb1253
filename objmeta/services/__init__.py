# Business logic layer - reconciliation, object lifecycle, storage
