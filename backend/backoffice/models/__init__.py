from .tenancy import Tenant
from .auth import User, Role, UserRole, RegistrationApproval
from .base import TenantModel, TENANT_SCHEMA
from .catalog import Product, Ingredient, Recipe, RecipeIngredient
from .sales import Sale, SaleItem
from .purchasing import PurchaseRequest, PurchaseRequestItem
from .stock import Overstock, Defect, Restock
from .expenses import Expense

__all__ = [
    'Tenant', 'User', 'Role', 'UserRole', 'RegistrationApproval',
    'TenantModel', 'TENANT_SCHEMA',
    'Product', 'Ingredient', 'Recipe', 'RecipeIngredient',
    'Sale', 'SaleItem',
    'PurchaseRequest', 'PurchaseRequestItem',
    'Overstock', 'Defect', 'Restock',
    'Expense',
]
