"""
Invoice document rendering (printable HTML).
"""
from pathlib import Path
from typing import Optional

from jinja2 import BaseLoader, Environment, FileSystemLoader

from models.client import Client
from models.invoice import Invoice

# Default invoice template
DEFAULT_INVOICE_HTML_TEMPLATE = """\
<!DOCTYPE html>
{#
  Invoice document template. Edit config/invoice_template.html.j2 to customise.
  Values are HTML-escaped automatically.  Use | safe only for trusted markup.

  Variables:
    invoice   dict: invoiceNumber, date, dueDate, status, items, subtotal,
              tax, total, paymentTerms, notes, baseCurrency, paidAt, ...
    client    dict or none: company, contactPerson, email, phone,
              gstNumber, panNumber, billingAddress {street, city, ...}
    company   dict: companyName, companyEmail, companyPhone, companyAddress,
              companyGST, companyPAN, companyMSME, defaultTaxRate
#}
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{{ invoice.invoiceNumber }}</title>
  <style>
    body  { font-family: sans-serif; font-size: 13px; margin: 32px; }
    table { width: 100%; border-collapse: collapse; }
    th, td { padding: 6px 8px; border-bottom: 1px solid #ddd; text-align: left; }
    td.num, th.num { text-align: right; }
    .totals td { border: none; }
  </style>
</head>
<body>
  <header>
    <h1>{{ company.companyName }}</h1>
    <p>{{ company.companyAddress }}</p>
    <p>{{ company.companyEmail }} &middot; {{ company.companyPhone }}</p>
    {% if company.companyGST %}<p>GSTIN: {{ company.companyGST }}</p>{% endif %}
    {% if company.companyPAN %}<p>PAN: {{ company.companyPAN }}</p>{% endif %}
    {% if company.companyMSME %}<p>MSME: {{ company.companyMSME }}</p>{% endif %}
  </header>

  <section class="meta">
    <h2>Invoice {{ invoice.invoiceNumber }}</h2>
    <p>Date: {{ invoice.date }} &middot; Due: {{ invoice.dueDate }}
       &middot; Terms: {{ invoice.paymentTerms }} days</p>
    <p>Status: {{ invoice.status | upper }}{% if invoice.paidAt %} ({{ invoice.paidAt[:10] }}){% endif %}</p>
    {% if invoice.poNumber %}<p>PO: {{ invoice.poNumber }}</p>{% endif %}
  </section>

  {% if client %}
  {% set addr = client.billingAddress or {} %}
  <section class="bill-to">
    <h3>Bill to</h3>
    <p>{{ client.company }}<br>{{ client.contactPerson }}</p>
    <p>{{ addr.street }}<br>{{ addr.city }} {{ addr.state }} {{ addr.postalCode }}<br>{{ addr.country }}</p>
    {% if client.gstNumber %}<p>GSTIN: {{ client.gstNumber }}</p>{% endif %}
    {% if client.panNumber %}<p>PAN: {{ client.panNumber }}</p>{% endif %}
  </section>
  {% endif %}

  <table class="items">
    <thead>
      <tr>
        <th>#</th><th>Item</th><th>Model</th><th>PO</th>
        <th class="num">Qty</th><th>UoM</th>
        <th class="num">Unit price</th><th class="num">Total</th>
      </tr>
    </thead>
    <tbody>
      {% for item in invoice["items"] %}
      <tr>
        <td>{{ loop.index }}</td>
        <td>{{ item.name }}</td>
        <td>{{ item.model }}</td>
        <td>{{ item.poNumber }}</td>
        <td class="num">{{ item.quantity | round(2) }}</td>
        <td>{{ item.uom }}</td>
        <td class="num">{{ "%.2f" | format(item.unitPrice) }} {{ item.currency }}</td>
        <td class="num">{{ "%.2f" | format(item.total) }} {{ item.currency }}</td>
      </tr>
      {% endfor %}
    </tbody>
  </table>

  <table class="totals">
    <tr><td class="num">Subtotal</td><td class="num">{{ "%.2f" | format(invoice.subtotal) }} {{ invoice.baseCurrency }}</td></tr>
    <tr><td class="num">Tax</td><td class="num">{{ "%.2f" | format(invoice.tax) }} {{ invoice.baseCurrency }}</td></tr>
    <tr><td class="num"><strong>Total</strong></td><td class="num"><strong>{{ "%.2f" | format(invoice.total) }} {{ invoice.baseCurrency }}</strong></td></tr>
  </table>

  {% if invoice.notes %}<p class="notes">{{ invoice.notes }}</p>{% endif %}
</body>
</html>
"""


def render_invoice_html(
    invoice: Invoice,
    company: dict,
    client: Optional[Client] = None,
    template_file: Path | None = None,
) -> str:
    """
    Render *invoice* as an HTML document using the operator template (or
    the built-in default).

    Args:
        invoice: The fully joined invoice
        company: Current settings document (company block and defaults)
        client: The billed client, when it can be loaded
        template_file: Optional path to a custom Jinja2 template file
    """
    if template_file and template_file.exists():
        env = Environment(
            loader=FileSystemLoader(str(template_file.parent)),
            autoescape=True,
            keep_trailing_newline=True,
        )
        tmpl = env.get_template(template_file.name)
    else:
        env = Environment(loader=BaseLoader(), autoescape=True, keep_trailing_newline=True)
        tmpl = env.from_string(DEFAULT_INVOICE_HTML_TEMPLATE)
    return tmpl.render(
        invoice=invoice.model_dump(by_alias=True),
        client=client.model_dump(by_alias=True) if client else None,
        company=company,
    )
