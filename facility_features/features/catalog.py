"""Feature catalog: every togglable capability in the inventory system.

Synopsis:
Static, process-lifetime catalog loaded once into the FeatureRegistry.
Sections group entries for admin screens; the behavioral grouping is the
per-feature ``category``.

Glossary:
- system_level: The feature has meaning on the global layer.
- facility_level: Individual facilities may override the global value.
"""

from __future__ import annotations

from typing import Any, Dict, List

# --- Feature catalog sections ---
# Purpose: Declare feature definitions in admin display order.
# Inputs: N/A (static data).
# Outputs: Section dicts consumed by FeatureRegistry.from_catalog.
FEATURE_CATALOG_SECTIONS: List[Dict[str, Any]] = [
    {
        "title": "Core inventory",
        "description": "Product catalog and stock tracking that every facility depends on.",
        "features": [
            {
                "key": "productManagement",
                "label": "Product Management",
                "description": "Create, edit, view, and manage products.",
                "category": "core",
                "icon": "📦",
                "version": "2.0.0",
                "dependencies": [],
                "default_enabled": True,
                "components": ["ProductForm", "ProductTable", "ProductDetail", "ProductCard"],
                "api_routes": ["GET /api/products", "POST /api/products", "PUT /api/products/:id", "DELETE /api/products/:id"],
            },
            {
                "key": "inventoryTracking",
                "label": "Inventory Tracking",
                "description": "Real-time inventory levels and stock management.",
                "category": "core",
                "icon": "📊",
                "version": "2.0.0",
                "dependencies": ["productManagement"],
                "default_enabled": True,
                "components": ["InventoryDashboard", "StockAlerts", "ReorderManagement"],
                "api_routes": ["GET /api/inventory/levels", "POST /api/inventory/adjust"],
            },
            {
                "key": "batchManagement",
                "label": "Batch Management",
                "description": "Track products by batches with expiry dates.",
                "category": "inventory",
                "icon": "📋",
                "version": "2.0.0",
                "dependencies": ["productManagement"],
                "default_enabled": True,
                "components": ["BatchTab", "BatchForm", "BatchTable", "ExpiryAlerts"],
                "api_routes": ["GET /api/products/:id/batches", "POST /api/products/:id/batches"],
            },
            {
                "key": "purchaseOrders",
                "label": "Purchase Orders",
                "description": "Create and manage purchase orders from suppliers.",
                "category": "procurement",
                "icon": "🛒",
                "version": "1.6.0",
                "dependencies": ["productManagement"],
                "default_enabled": True,
                "components": ["PurchaseOrderForm", "PurchaseOrderList", "SupplierManagement"],
                "api_routes": ["GET /api/purchase-orders", "POST /api/purchase-orders"],
            },
        ],
    },
    {
        "title": "Warehouse & logistics",
        "description": "Physical layout, placement, and outbound distribution.",
        "features": [
            {
                "key": "sectionManagement",
                "label": "Section Management",
                "description": "Organize the warehouse into sections and zones.",
                "category": "warehouse",
                "icon": "🗂️",
                "version": "2.0.0",
                "dependencies": ["productManagement"],
                "default_enabled": True,
                "components": ["SectionManager", "SectionForm", "SectionList"],
                "api_routes": ["GET /api/sections", "POST /api/sections", "PUT /api/sections/:id"],
            },
            {
                "key": "storageDesigner",
                "label": "Storage Designer",
                "description": "Visual warehouse layout designer with product placement.",
                "category": "advanced",
                "icon": "🏗️",
                "version": "3.0.0",
                "dependencies": ["productManagement", "sectionManagement"],
                "default_enabled": True,
                "components": ["StorageDesigner", "PlacementTab", "Storage2DCanvas", "ProductPlacementPanel"],
                "api_routes": ["GET /api/storage/layout", "PUT /api/storage/layout", "PUT /api/storage/products/:id/location"],
            },
            {
                "key": "distributionManagement",
                "label": "Distribution Management",
                "description": "Track product distribution and shipments.",
                "category": "logistics",
                "icon": "🚚",
                "version": "2.0.0",
                "dependencies": ["productManagement", "batchManagement"],
                "default_enabled": True,
                "components": ["DistributionForm", "ShipmentTracking", "DeliveryStatus"],
                "api_routes": ["POST /api/products/:id/distribute", "GET /api/shipments"],
            },
        ],
    },
    {
        "title": "Insight & monitoring",
        "description": "Reporting, environmental monitoring, and quality checks.",
        "features": [
            {
                "key": "analytics",
                "label": "Analytics & Reporting",
                "description": "Advanced analytics, charts, and business intelligence.",
                "category": "business",
                "icon": "📈",
                "version": "2.0.0",
                "dependencies": ["productManagement"],
                "default_enabled": True,
                "components": ["Analytics", "AnalyticsTab", "Charts", "Reports"],
                "api_routes": ["GET /api/analytics/summary", "GET /api/analytics/trends"],
            },
            {
                "key": "temperatureMonitoring",
                "label": "Temperature Monitoring",
                "description": "Real-time temperature tracking and alerts.",
                "category": "monitoring",
                "icon": "🌡️",
                "version": "1.5.0",
                "dependencies": ["productManagement"],
                "default_enabled": False,
                "components": ["TemperatureMonitor", "TemperatureAlerts", "TemperatureHistory"],
                "api_routes": ["GET /api/temperature/current", "GET /api/temperature/history"],
            },
            {
                "key": "qualityControl",
                "label": "Quality Control",
                "description": "Product quality inspections and defect tracking.",
                "category": "quality",
                "icon": "✅",
                "version": "1.8.0",
                "dependencies": ["productManagement", "batchManagement"],
                "default_enabled": False,
                "components": ["QualityInspections", "DefectTracking", "QualityReports"],
                "api_routes": ["GET /api/quality/inspections", "POST /api/quality/inspections"],
            },
            {
                "key": "activityLogging",
                "label": "Activity Logging",
                "description": "System activity logs and audit trails (always global).",
                "category": "security",
                "icon": "📝",
                "version": "1.4.0",
                "dependencies": [],
                "default_enabled": True,
                "facility_level": False,
                "components": ["ActivityLogs", "AuditTrail", "UserActions"],
                "api_routes": ["GET /api/activity-logs", "POST /api/activity-logs"],
            },
        ],
    },
    {
        "title": "Enterprise",
        "description": "Finance, compliance, and communication add-ons for larger operations.",
        "features": [
            {
                "key": "financialTracking",
                "label": "Financial Tracking",
                "description": "Cost tracking, inventory valuation, and financial analytics.",
                "category": "finance",
                "icon": "💰",
                "dependencies": ["productManagement"],
                "enterprise": True,
                "components": ["FinancialDashboard", "CostAnalysis", "ValuationReports"],
                "api_routes": ["/api/financial/*", "/api/costing/*"],
            },
            {
                "key": "multiCurrencySupport",
                "label": "Multi-Currency Support",
                "description": "Multiple currencies with exchange rate tracking.",
                "category": "finance",
                "icon": "🌍",
                "dependencies": ["financialTracking"],
                "enterprise": True,
                "components": ["CurrencyManager", "ExchangeRateTracker"],
                "api_routes": ["/api/currency/*"],
            },
            {
                "key": "costAnalysis",
                "label": "Advanced Cost Analysis",
                "description": "FIFO/LIFO costing, landed cost calculations, profitability analysis.",
                "category": "finance",
                "icon": "📊",
                "dependencies": ["financialTracking"],
                "enterprise": True,
                "components": ["CostAnalyzer", "ProfitabilityReports", "CostingMethods"],
                "api_routes": ["/api/costing/*", "/api/profitability/*"],
            },
            {
                "key": "smartNotifications",
                "label": "Smart Notifications",
                "description": "Email, SMS, and webhook notifications with escalation workflows.",
                "category": "communication",
                "icon": "🔔",
                "dependencies": [],
                "enterprise": True,
                "components": ["NotificationCenter", "EscalationWorkflows", "MessageTemplates"],
                "api_routes": ["/api/notifications/*", "/api/messaging/*"],
            },
            {
                "key": "securityCompliance",
                "label": "Security & Compliance",
                "description": "Compliance tracking and audit controls.",
                "category": "compliance",
                "icon": "🔒",
                "dependencies": ["activityLogging"],
                "enterprise": True,
                "components": ["SecurityManager", "ComplianceTracker", "AuditControls"],
                "api_routes": ["/api/security/*", "/api/compliance/*"],
            },
            {
                "key": "insuranceIntegration",
                "label": "Insurance Integration",
                "description": "Coverage tracking and claims with insurance providers.",
                "category": "finance",
                "icon": "🛡️",
                "dependencies": ["financialTracking", "securityCompliance"],
                "enterprise": True,
                "components": ["InsuranceManager", "ClaimsTracker", "CoverageAnalysis"],
                "api_routes": ["/api/insurance/*"],
            },
            {
                "key": "auditTrails",
                "label": "Enhanced Audit Trails",
                "description": "Audit trails with compliance reporting and forensic analysis.",
                "category": "compliance",
                "icon": "📋",
                "dependencies": ["activityLogging"],
                "enterprise": True,
                "components": ["AuditTrailManager", "ForensicAnalysis", "ComplianceReports"],
                "api_routes": ["/api/audit-trails/*"],
            },
        ],
    },
]
