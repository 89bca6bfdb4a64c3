from django.contrib import admin

from .models import Category, Subcategory, Transaction


class SubcategoryInline(admin.TabularInline):
    model = Subcategory
    extra = 0
    fields = ("id", "name", "created_by")
    readonly_fields = ("created_by",)


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "created_by", "created_at")
    search_fields = ("name",)
    inlines = [SubcategoryInline]


@admin.register(Subcategory)
class SubcategoryAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "category", "created_at")
    list_filter = ("category",)
    search_fields = ("name",)


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "date", "type", "amount", "description", "category", "receipt_url")
    list_filter = ("type", "category")
    search_fields = ("id", "description")
    date_hierarchy = "date"
    readonly_fields = ("created_by", "created_at", "updated_at")
