from assetbook.api.v1.endpoints import assets, depreciation, depreciation_schedule

__all__ = ["assets", "depreciation", "depreciation_schedule"]
