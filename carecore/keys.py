# Persisted collection keys. Existing demo data depends on these exact names.
TASKS = "tasks"
TRANSACTIONS = "transactions"
REQUESTS = "requests"
BUDGET_BY_CLIENT = "budgetByClient"
ANNUAL_BUDGET_BY_CLIENT = "annualBudgetByClient"
TASK_FILES = "taskFiles"
ORG_STATUS_BY_CLIENT = "orgStatusByClient"
CURRENT_ORG_ID = "currentOrgId"
TASK_CATALOG = "taskCatalog"
ACTIVE_ROLE = "activeRole"
ACTIVE_CLIENT_ID = "activeClientId"
CURRENT_CLIENT_NAME = "currentClientName"

# session scope
SESSION_ROLE = "mockRole"
SESSION_ORG_SEEDED = "orgSeededThisSession"
