"""
Shared constants for ClinicDesk application.
"""

# Ledger name prefixes; the subject id is appended to each
QUEUE_STATUS_PREFIX = "CLINIC_QUEUE_STATUS_"
PATIENT_TAGS_PREFIX = "CLINIC_PATIENT_TAGS_"
PRESCRIPTION_PREFIX = "CLINIC_PRESCRIPTION_"
TEMPLATE_PREFIX = "CLINIC_TEMPLATE_"
DISPENSE_STATUS_PREFIX = "CLINIC_DISPENSE_STATUS_"
CHECKOUT_STATUS_PREFIX = "CLINIC_CHECKOUT_STATUS_"
DISPENSE_RECORD_PREFIX = "CLINIC_DISPENSE_RECORD_"

# ERP collections
LEDGER_TABLE = "AD_SysConfig"
ASSIGNMENT_TABLE = "S_ResourceAssignment"
RESOURCE_TABLE = "S_Resource"
RESOURCE_TYPE_TABLE = "S_ResourceType"
PARTNER_TABLE = "C_BPartner"
PRODUCT_TABLE = "M_Product"
STORAGE_TABLE = "M_StorageOnHand"
INVENTORY_TABLE = "M_Inventory"
INVENTORY_LINE_TABLE = "M_InventoryLine"

DISPENSE_CHARGE_NAME = "Clinic Dispense"
DOCTOR_RESOURCE_TYPE_NAME = "Doctor"
COMPLETE_DOC_ACTION = {"doc-action": "CO"}

# Default scan sizes for prefix listings
LEDGER_PAGE_SIZE = 50
