"""CSS for the document templates."""

DEFAULT_STYLES = """
  @page { size: A4; margin: 12mm; }
  * { box-sizing: border-box; margin: 0; padding: 0; }
  body {
    font-family: 'Helvetica Neue', Arial, sans-serif;
    font-size: 11pt;
    color: #1f2a38;
    background: white;
  }
  .document-header { border-bottom: 2px solid #2563eb; padding-bottom: 12px; margin-bottom: 16px; }
  .header-content { display: flex; justify-content: space-between; align-items: center; }
  .brand { display: flex; align-items: center; gap: 10px; }
  .logo { width: 36px; height: 36px; border-radius: 8px; background: #2563eb; }
  .title { font-size: 20pt; font-weight: 700; }
  .patient-info { text-align: right; color: #4b5563; }
  .patient-name { font-size: 13pt; color: #1f2a38; }
  .notes-section {
    background: #f1f5f9;
    border-left: 4px solid #2563eb;
    padding: 10px 14px;
    margin-bottom: 16px;
  }
  .notes-title { font-weight: 700; margin-bottom: 4px; }
  .exercises-grid { display: flex; flex-direction: column; gap: 14px; }
  .exercise-container {
    border: 1px solid #e5e7eb;
    border-radius: 8px;
    overflow: hidden;
    page-break-inside: avoid;
  }
  .exercise-header { background: #f8fafc; padding: 8px 12px; border-bottom: 1px solid #e5e7eb; }
  .exercise-title { font-size: 13pt; }
  .exercise-content { display: flex; gap: 14px; padding: 12px; }
  .exercise-image-container { flex: 0 0 200px; }
  .exercise-image { width: 200px; height: 200px; object-fit: contain; }
  .exercise-description { flex: 1; line-height: 1.4; }
  .page-break { page-break-after: always; break-after: page; }
"""

CALENDAR_STYLES = """
  .calendar-page { padding-top: 8px; }
  .calendar-title { font-size: 18pt; text-align: center; margin-bottom: 14px; }
  .calendar-container { border: 1px solid #e5e7eb; border-radius: 8px; overflow: hidden; }
  .calendar-header, .calendar-grid { display: grid; grid-template-columns: repeat(7, 1fr); }
  .weekday { background: #2563eb; color: white; text-align: center; padding: 6px 0; font-weight: 700; }
  .calendar-day { border: 1px solid #e5e7eb; height: 64px; padding: 4px; position: relative; }
  .calendar-day.empty { background: #f8fafc; }
  .calendar-day.highlighted { background: #fef3c7; }
  .date-number { font-size: 9pt; color: #4b5563; }
  .checkbox-container { position: absolute; bottom: 6px; right: 6px; }
  .checkbox { width: 16px; height: 16px; border: 1.5px solid #94a3b8; border-radius: 3px; }
  .calendar-instructions { margin-top: 12px; text-align: center; color: #4b5563; }
"""
