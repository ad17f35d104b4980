from io import BytesIO
from fpdf import FPDF
from fpdf.enums import XPos, YPos
from creditsales.modules.generals import (
    DateFormatter,
    DateTimeFormatter,
    GetCurrentDateTime,
    ThousandSeparator,
)

DEFAULT_COMPANY_NAME = "Credit Sales"


def LabelValueRow(pdf: FPDF, label: str, value, label_width: int = 45):
    pdf.set_font("Helvetica", "", 11)
    pdf.cell(label_width, 7, label, border=0, align="L")
    pdf.cell(4, 7, ":", border=0, align="L")
    pdf.set_font("Helvetica", "B", 11)
    pdf.multi_cell(
        0, 7, str(value or "-"), border=0, align="L", new_x=XPos.LMARGIN, new_y=YPos.NEXT
    )


def CreatePDFHeader(pdf: FPDF, company: dict, show_line: bool = True):
    pdf.set_font("Helvetica", "B", 14)
    pdf.cell(
        0,
        8,
        (company.get("company_name") or DEFAULT_COMPANY_NAME).upper(),
        border=0,
        align="C",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    pdf.set_font("Helvetica", "", 10)
    contacts = [
        company.get("company_address"),
        " | ".join(
            item
            for item in [company.get("company_phone"), company.get("company_email")]
            if item
        ),
    ]
    for contact in contacts:
        if contact:
            pdf.cell(
                0, 5, contact, border=0, align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT
            )
    if show_line:
        pdf.ln(3)
        pdf.line(pdf.l_margin, pdf.get_y(), pdf.w - pdf.r_margin, pdf.get_y())
        pdf.ln(3)


def CreatePDFInvoiceBody(pdf: FPDF, data: dict, company: dict):
    # invoice title
    pdf.set_font("Helvetica", "B", 14)
    pdf.cell(0, 10, "INVOICE", border=0, align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(
        0,
        6,
        f"{data['type'].upper()} | ORDER #{data['id_order'][-8:]}",
        border=0,
        align="R",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    pdf.ln(5)

    customer = data.get("customer", {})
    LabelValueRow(pdf, "Customer", customer.get("name"))
    LabelValueRow(pdf, "Address", customer.get("address"))
    LabelValueRow(pdf, "Pincode", customer.get("pincode"))
    LabelValueRow(pdf, "Phone Number", customer.get("phone_number"))
    LabelValueRow(pdf, "Order Date", DateFormatter(data.get("date")))
    LabelValueRow(pdf, "Payment", str(data.get("payment", "-")).capitalize())

    # item
    pdf.ln(5)
    pdf.set_font("Helvetica", "B", 11)
    pdf.set_fill_color(220, 220, 220)
    pdf.cell(90, 8, "Product", border=1, align="L", fill=True)
    pdf.cell(25, 8, "Qty", border=1, align="C", fill=True)
    pdf.cell(35, 8, "Price", border=1, align="R", fill=True)
    pdf.cell(
        0, 8, "Amount", border=1, align="R", fill=True, new_x=XPos.LMARGIN, new_y=YPos.NEXT
    )
    pdf.set_font("Helvetica", "", 11)
    pdf.cell(90, 8, str(data.get("product", "-")), border=1, align="L")
    pdf.cell(25, 8, str(data.get("quantity", 0)), border=1, align="C")
    pdf.cell(35, 8, ThousandSeparator(data.get("price", 0)), border=1, align="R")
    pdf.cell(
        0,
        8,
        ThousandSeparator(data.get("amount", 0)),
        border=1,
        align="R",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    pdf.ln(3)
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(
        0,
        8,
        f"Total: {ThousandSeparator(data.get('amount', 0))}",
        border=0,
        align="R",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )

    # bank account
    if company.get("bank_name") or company.get("bank_account_number"):
        pdf.ln(8)
        pdf.set_font("Helvetica", "B", 11)
        pdf.cell(
            0, 7, "Payment Details", border=0, new_x=XPos.LMARGIN, new_y=YPos.NEXT
        )
        LabelValueRow(pdf, "Bank", company.get("bank_name"))
        LabelValueRow(pdf, "Account Number", company.get("bank_account_number"))

    # footer
    pdf.set_y(-30)
    pdf.set_font("Helvetica", "I", 9)
    pdf.cell(
        0,
        5,
        f"Printed on {DateTimeFormatter(GetCurrentDateTime())}",
        border=0,
        align="C",
    )


def CreateInvoicePDF(data: dict, company: dict) -> BytesIO:
    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    # create header
    CreatePDFHeader(pdf, company)

    # create body
    CreatePDFInvoiceBody(pdf, data, company)

    # save to pdf
    pdf_bytes = BytesIO()
    pdf_bytes.write(pdf.output())
    pdf_bytes.seek(0)
    return pdf_bytes


def CreateReceiptPDF(data: dict) -> BytesIO:
    pdf = FPDF(orientation="P", unit="mm", format="A5")
    pdf.set_auto_page_break(auto=True, margin=10)
    pdf.set_margins(14, 14, 14)
    pdf.add_page()

    # header
    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(
        0,
        9,
        data["company_name"].upper(),
        border=0,
        align="C",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(
        0,
        7,
        "PAYMENT RECEIPT",
        border=0,
        align="C",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    pdf.ln(6)

    # receipt details
    LabelValueRow(pdf, "Receipt No", f"REC-{data['id_transaction'][-6:]}", 35)
    LabelValueRow(pdf, "Order ID", data["id_order"][-8:], 35)
    LabelValueRow(pdf, "Customer", data["customer_name"], 35)
    LabelValueRow(pdf, "Delivery Man", data["delivery_man_name"], 35)
    LabelValueRow(pdf, "Amount", ThousandSeparator(data["amount"]), 35)
    LabelValueRow(pdf, "Method", str(data["method"]).capitalize(), 35)
    LabelValueRow(pdf, "Date", DateTimeFormatter(data["date"]), 35)

    cheque_details = data.get("cheque_details")
    if cheque_details:
        pdf.ln(4)
        pdf.set_font("Helvetica", "BU", 11)
        pdf.cell(
            0, 7, "Cheque Details", border=0, new_x=XPos.LMARGIN, new_y=YPos.NEXT
        )
        LabelValueRow(pdf, "Number", cheque_details.get("number"), 35)
        LabelValueRow(pdf, "Bank", cheque_details.get("bank"), 35)
        LabelValueRow(pdf, "Date", DateFormatter(cheque_details.get("date")), 35)

    # footer
    pdf.ln(12)
    pdf.set_font("Helvetica", "I", 9)
    pdf.set_text_color(85, 85, 85)
    pdf.cell(
        0,
        5,
        "Thank you for your payment!",
        border=0,
        align="C",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    pdf.cell(
        0,
        5,
        "This is a system-generated receipt.",
        border=0,
        align="C",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )

    pdf_bytes = BytesIO()
    pdf_bytes.write(pdf.output())
    pdf_bytes.seek(0)
    return pdf_bytes
