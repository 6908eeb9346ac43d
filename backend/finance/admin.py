from django.contrib import admin

from .models import BalanceTransaction, CommissionPeriod


@admin.register(CommissionPeriod)
class CommissionPeriodAdmin(admin.ModelAdmin):
    list_display = ('driver', 'service_type', 'period_start', 'total_services', 'total_amount', 'status')
    list_filter = ('service_type', 'status')


admin.site.register(BalanceTransaction)
